"""Credential link table: which instance is active for each method of a user."""

from loguru import logger
from sqlmodel import Session

from src.authlink.core.errors import (
    LastCredential,
    MethodMismatch,
    NotFound,
    OwnerMismatch,
    ReferenceNotFound,
)
from src.authlink.core.services.credential.method_store import CredentialMethodStore
from src.authlink.entities.core.credential import CredentialMethodRepository, CredentialRepository
from src.authlink.entities.core.credential_link import CredentialLink, CredentialLinkRepository
from src.authlink.entities.core.user import UserRepository
from src.authlink.runtime.config.config_data import CredentialsConfig
from src.authlink.runtime.context import get_config


class CredentialLinkService:
    """Per-user pointers to the active credential instance of each method.

    Link rows are created lazily and carry one nullable slot per known method.
    Pointer changes never delete instances, except in ``revoke`` which unlinks
    and deletes within the caller's transaction.
    """

    def __init__(self, session: Session, config: CredentialsConfig | None = None) -> None:
        self._session = session
        self._config = config or get_config().credentials
        self._links = CredentialLinkRepository(session)
        self._methods = CredentialMethodRepository(session)
        self._credentials = CredentialRepository(session)
        self._users = UserRepository(session)

    def _require_user(self, uid: str) -> None:
        if not self._users.exists(uid):
            raise NotFound(f"User {uid} does not exist", details={"uid": uid})

    def _require_method(self, method: str) -> None:
        if self._methods.get(method) is None:
            raise NotFound(
                f"Unknown credential method '{method}'", details={"method": method}
            )

    def ensure(self, uid: str) -> bool:
        """Create the user's link row with every pointer null, if it is missing."""
        created = self._links.ensure(uid, self._methods.names())
        if created:
            logger.debug("Created link row for user {}", uid)
        return created

    def get(self, uid: str) -> CredentialLink | None:
        return self._links.get(uid)

    def link(self, uid: str, method: str, cid: str) -> str | None:
        """Make ``cid`` the active credential for ``method``; returns the replaced cid."""
        self._require_user(uid)
        self._require_method(method)

        instance = self._credentials.get(cid)
        if instance is None:
            raise ReferenceNotFound(
                f"Credential {cid} does not exist", details={"cid": cid}
            )
        if instance.method != method:
            raise MethodMismatch(
                f"Credential {cid} belongs to '{instance.method}', not '{method}'",
                details={"cid": cid, "method": method, "actual_method": instance.method},
            )
        if instance.uid != uid:
            raise OwnerMismatch(
                f"Credential {cid} does not belong to user {uid}",
                details={"cid": cid, "uid": uid},
            )

        self.ensure(uid)
        previous = self._links.set_pointer(uid, method, cid)
        logger.info("Linked {} credential {} for user {}", method, cid, uid)
        return previous

    def unlink(self, uid: str, method: str) -> str | None:
        """Clear the pointer for ``method``; the instance itself is kept."""
        self._require_user(uid)
        self._require_method(method)
        if not self._links.exists(uid):
            return None

        previous = self._links.set_pointer(uid, method, None)
        if previous is not None:
            logger.info("Unlinked {} credential {} for user {}", method, previous, uid)
        return previous

    def revoke(self, uid: str, method: str) -> str:
        """Unlink the active credential for ``method`` and delete it."""
        self._require_user(uid)
        self._require_method(method)

        cid = self._links.get_pointer(uid, method, lock=True)
        if cid is None:
            raise NotFound(
                f"User {uid} has no active '{method}' credential",
                details={"uid": uid, "method": method},
            )

        if self._config.protect_last_credential:
            link = self._links.get(uid)
            if link is not None and link.active_methods() == [method]:
                raise LastCredential(
                    f"Cannot revoke the only active credential of user {uid}",
                    details={"uid": uid, "method": method},
                )

        self._links.set_pointer(uid, method, None)
        CredentialMethodStore(self._session, method).delete(cid)
        logger.info("Revoked {} credential {} for user {}", method, cid, uid)
        return cid

    def clear_pointers_to(self, cid: str) -> int:
        cleared = self._links.clear_pointers_to(cid)
        if cleared:
            logger.debug("Cleared {} pointer(s) to credential {}", cleared, cid)
        return cleared

    def active_credential(self, uid: str, method: str) -> str | None:
        self._require_method(method)
        return self._links.get_pointer(uid, method)

    def active_methods(self, uid: str) -> list[str]:
        link = self._links.get(uid)
        return [] if link is None else link.active_methods()

    def can_delete_user(self, uid: str) -> bool:
        """True only if every method pointer of ``uid`` is null."""
        self._require_user(uid)
        link = self._links.get(uid)
        return link is None or link.is_empty()

    def remove(self, uid: str) -> bool:
        """Destroy the link row; only valid while every pointer is null."""
        return self._links.delete(uid)
