"""Transactional entry point for credential and user operations.

Every public method runs as exactly one transaction through
``DbSessionService.run_in_transaction``: it either commits completely or
leaves no trace. Work functions may be re-run on serialization conflicts.
"""

from collections.abc import Callable
from typing import Any

from loguru import logger
from sqlmodel import Session

from src.authlink.core.errors import (
    AuthenticationFailed,
    Disabled,
    NotFound,
    ReferentialIntegrityViolation,
)
from src.authlink.core.services.credential.link_table import CredentialLinkService
from src.authlink.core.services.credential.method_store import CredentialMethodStore
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.user.user_registry import UserRegistryService
from src.authlink.entities.core.credential import (
    CredentialInstance,
    CredentialMethod,
    CredentialMethodRepository,
    CredentialRepository,
)
from src.authlink.entities.core.credential_link import CredentialLink
from src.authlink.entities.core.user import User
from src.authlink.runtime.context import get_config

SecretVerifier = Callable[[bytes], bool]


class CredentialService:
    def __init__(self, db: DbSessionService):
        self._db = db

    @staticmethod
    def _store_for(session: Session, cid: str) -> CredentialMethodStore:
        instance = CredentialRepository(session).get(cid)
        if instance is None:
            raise NotFound(f"Credential {cid} does not exist", details={"cid": cid})
        return CredentialMethodStore(session, instance.method)

    # Users

    def create_user(self, profile: dict[str, Any] | None = None, uid: str | None = None) -> User:
        return self._db.run_in_transaction(
            lambda session: UserRegistryService(session).create(profile, uid)
        )

    def get_user(self, uid: str) -> User:
        return self._db.run_in_transaction(lambda session: UserRegistryService(session).get(uid))

    def list_users(self) -> list[User]:
        return self._db.run_in_transaction(
            lambda session: UserRegistryService(session).list_all()
        )

    def update_profile(self, uid: str, profile: dict[str, Any] | None) -> User:
        return self._db.run_in_transaction(
            lambda session: UserRegistryService(session).update_profile(uid, profile)
        )

    def delete_user(self, uid: str) -> None:
        """Destroy a user once no method pointer references it.

        Unlinked instances left behind are torn down in the same transaction
        unless ``credentials.purge_unlinked_on_user_delete`` is off, in which
        case they block the deletion.
        """
        purge = get_config().credentials.purge_unlinked_on_user_delete

        def work(session: Session) -> None:
            users = UserRegistryService(session)
            links = CredentialLinkService(session)
            users.get(uid)

            if not links.can_delete_user(uid):
                raise ReferentialIntegrityViolation(
                    f"User {uid} still has active credentials",
                    details={"uid": uid, "active_methods": links.active_methods(uid)},
                )

            remaining = CredentialRepository(session).list_for_user(uid)
            if remaining and not purge:
                raise ReferentialIntegrityViolation(
                    f"User {uid} still owns unlinked credentials",
                    details={"uid": uid, "cids": [instance.cid for instance in remaining]},
                )
            if remaining:
                purged = CredentialRepository(session).delete_for_user(uid)
                logger.info("Purged {} unlinked credential(s) of user {}", purged, uid)

            links.remove(uid)
            users.delete(uid)

        self._db.run_in_transaction(work)

    def can_delete_user(self, uid: str) -> bool:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).can_delete_user(uid)
        )

    # Credential method stores

    def list_methods(self) -> list[CredentialMethod]:
        return self._db.run_in_transaction(
            lambda session: CredentialMethodRepository(session).list_all()
        )

    def register(
        self,
        uid: str,
        method: str,
        identifier: str,
        secret: bytes,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        """Register ``method`` for ``uid``; the new instance is not linked yet."""

        def work(session: Session) -> str:
            cid = CredentialMethodStore(session, method).register(
                uid, identifier, secret, attributes
            )
            CredentialLinkService(session).ensure(uid)
            return cid

        return self._db.run_in_transaction(work)

    def register_and_link(
        self,
        uid: str,
        method: str,
        identifier: str,
        secret: bytes,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        """Register ``method`` for ``uid`` and make it active in the same transaction."""

        def work(session: Session) -> str:
            cid = CredentialMethodStore(session, method).register(
                uid, identifier, secret, attributes
            )
            CredentialLinkService(session).link(uid, method, cid)
            return cid

        return self._db.run_in_transaction(work)

    def get_credential(self, cid: str) -> CredentialInstance:
        return self._db.run_in_transaction(lambda session: self._store_for(session, cid).get(cid))

    def find_credential(self, method: str, identifier: str) -> CredentialInstance | None:
        return self._db.run_in_transaction(
            lambda session: CredentialMethodStore(session, method).get_by_identifier(identifier)
        )

    def list_credentials(self, uid: str) -> list[CredentialInstance]:
        return self._db.run_in_transaction(
            lambda session: CredentialRepository(session).list_for_user(uid)
        )

    def update_secret(self, cid: str, new_secret: bytes) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).update_secret(cid, new_secret)
        )

    def update_identifier(self, cid: str, identifier: str) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).update_identifier(cid, identifier)
        )

    def update_attributes(self, cid: str, attributes: dict[str, Any]) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).update_attributes(cid, attributes)
        )

    def mark_verified(self, cid: str) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).mark_verified(cid)
        )

    def set_disabled(self, cid: str, disabled: bool) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).set_disabled(cid, disabled)
        )

    def touch_authentication(self, cid: str) -> CredentialInstance:
        return self._db.run_in_transaction(
            lambda session: self._store_for(session, cid).touch_authentication(cid)
        )

    def delete_credential(self, cid: str) -> None:
        """Clear every pointer to ``cid`` and delete the instance, atomically."""

        def work(session: Session) -> None:
            store = self._store_for(session, cid)
            CredentialLinkService(session).clear_pointers_to(cid)
            store.delete(cid)

        self._db.run_in_transaction(work)

    # Link table

    def link(self, uid: str, method: str, cid: str) -> str | None:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).link(uid, method, cid)
        )

    def unlink(self, uid: str, method: str) -> str | None:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).unlink(uid, method)
        )

    def revoke(self, uid: str, method: str) -> str:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).revoke(uid, method)
        )

    def active_credential(self, uid: str, method: str) -> str | None:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).active_credential(uid, method)
        )

    def get_link(self, uid: str) -> CredentialLink | None:
        return self._db.run_in_transaction(
            lambda session: CredentialLinkService(session).get(uid)
        )

    # Composites

    def enroll(
        self,
        method: str,
        identifier: str,
        secret: bytes,
        profile: dict[str, Any] | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> tuple[User, str]:
        """Create a user together with its first, linked credential."""

        def work(session: Session) -> tuple[User, str]:
            user = UserRegistryService(session).create(profile)
            cid = CredentialMethodStore(session, method).register(
                user.uid, identifier, secret, attributes
            )
            CredentialLinkService(session).link(user.uid, method, cid)
            return user, cid

        return self._db.run_in_transaction(work)

    def authenticate(
        self, method: str, identifier: str, verifier: SecretVerifier
    ) -> CredentialInstance:
        """Resolve the active credential for ``identifier`` and check its secret.

        ``verifier`` receives the stored secret material and decides whether the
        presented secret matches; hashing lives outside this package. It runs
        inside the transaction and may run again if the transaction is retried.
        """

        def work(session: Session) -> CredentialInstance:
            store = CredentialMethodStore(session, method)
            instance = store.get_by_identifier(identifier)
            if instance is None:
                raise NotFound(
                    f"No '{method}' credential for that {store.method.identifier_label}",
                    details={"method": method},
                )
            active = CredentialLinkService(session).active_credential(instance.uid, method)
            if active != instance.cid:
                raise NotFound(
                    f"Credential {instance.cid} is not the active '{method}' credential",
                    details={"cid": instance.cid, "method": method},
                )
            if instance.disabled:
                raise Disabled(
                    f"Credential {instance.cid} is disabled",
                    details={"cid": instance.cid, "method": method},
                )
            if not verifier(instance.secret):
                logger.info("Rejected {} authentication for credential {}", method, instance.cid)
                raise AuthenticationFailed(
                    "Invalid credentials", details={"method": method}
                )
            return store.touch_authentication(instance.cid)

        return self._db.run_in_transaction(work)
