"""Credential method store.

One store per credential method. All stores index the shared ``credentials``
table by method name; a store never reads or writes the link table, so the
caller is responsible for clearing pointers before deleting an instance.
"""

from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from src.authlink.core.errors import (
    AlreadyRegistered,
    AuthLinkError,
    Disabled,
    DuplicateIdentity,
    InvalidField,
    MethodMismatch,
    NotFound,
)
from src.authlink.entities.core._base import utc_now
from src.authlink.entities.core.credential import (
    CredentialInstance,
    CredentialMethod,
    CredentialMethodRepository,
    CredentialRepository,
)
from src.authlink.entities.core.user import UserRepository

_OWNER_CONSTRAINT_MARKERS = ("uq_credential_method_uid", "credentials.method, credentials.uid")
_IDENTIFIER_CONSTRAINT_MARKERS = (
    "uq_credential_method_identifier",
    "credentials.method, credentials.identifier",
)


class CredentialMethodStore:
    """Credential instances of a single method."""

    def __init__(self, session: Session, method: str) -> None:
        definition = CredentialMethodRepository(session).get(method)
        if definition is None:
            raise NotFound(
                f"Unknown credential method '{method}'", details={"method": method}
            )
        self.method: CredentialMethod = definition
        self._credentials = CredentialRepository(session)
        self._users = UserRepository(session)

    @property
    def name(self) -> str:
        return self.method.name

    def _require(self, cid: str) -> CredentialInstance:
        instance = self._credentials.get(cid)
        if instance is None:
            raise NotFound(
                f"Credential {cid} does not exist", details={"cid": cid}
            )
        if instance.method != self.name:
            raise MethodMismatch(
                f"Credential {cid} belongs to '{instance.method}', not '{self.name}'",
                details={"cid": cid, "method": self.name, "actual_method": instance.method},
            )
        return instance

    def _normalize(self, identifier: str) -> str:
        normalized = self.method.normalize_identifier(identifier)
        if not normalized:
            raise InvalidField(
                f"A {self.method.identifier_label} is required",
                details={"field": self.method.identifier_label},
            )
        return normalized

    def _check_declared(self, attributes: dict[str, Any]) -> None:
        unknown = sorted(set(attributes) - set(self.method.field_defaults))
        if unknown:
            raise InvalidField(
                f"Method '{self.name}' does not declare {', '.join(unknown)}",
                details={"method": self.name, "fields": unknown},
            )

    def _resolve_attributes(self, attributes: dict[str, Any] | None) -> dict[str, Any]:
        attributes = attributes or {}
        self._check_declared(attributes)
        return {**self.method.field_defaults, **attributes}

    def _translate(self, error: IntegrityError, uid: str, identifier: str) -> AuthLinkError | None:
        """Map a unique violation lost to a concurrent writer onto the domain error."""
        message = str(error.orig).lower()
        if any(marker in message for marker in _OWNER_CONSTRAINT_MARKERS):
            return AlreadyRegistered(
                f"User {uid} already has a '{self.name}' credential",
                details={"uid": uid, "method": self.name},
            )
        if any(marker in message for marker in _IDENTIFIER_CONSTRAINT_MARKERS):
            return DuplicateIdentity(
                f"{self.method.identifier_label} '{identifier}' is already in use",
                details={"method": self.name, "identifier": identifier},
            )
        return None

    def get(self, cid: str) -> CredentialInstance:
        return self._require(cid)

    def get_by_uid(self, uid: str) -> CredentialInstance | None:
        return self._credentials.get_by_owner(self.name, uid)

    def get_by_identifier(self, identifier: str) -> CredentialInstance | None:
        return self._credentials.get_by_identifier(self.name, self._normalize(identifier))

    def list_all(self) -> list[CredentialInstance]:
        return self._credentials.list_for_method(self.name)

    def register(
        self,
        uid: str,
        identifier: str,
        secret: bytes,
        attributes: dict[str, Any] | None = None,
    ) -> str:
        """Create an unverified, enabled instance for ``uid`` and return its cid."""
        if not self._users.exists(uid):
            raise NotFound(f"User {uid} does not exist", details={"uid": uid})

        identifier = self._normalize(identifier)
        if self._credentials.get_by_owner(self.name, uid) is not None:
            raise AlreadyRegistered(
                f"User {uid} already has a '{self.name}' credential",
                details={"uid": uid, "method": self.name},
            )
        if self._credentials.get_by_identifier(self.name, identifier) is not None:
            raise DuplicateIdentity(
                f"{self.method.identifier_label} '{identifier}' is already in use",
                details={"method": self.name, "identifier": identifier},
            )

        now = utc_now()
        instance = CredentialInstance(
            method=self.name,
            uid=uid,
            identifier=identifier,
            secret=secret,
            attributes=self._resolve_attributes(attributes),
            verified=False,
            disabled=False,
            created=now,
            last_update=now,
        )
        try:
            created = self._credentials.create(instance)
        except IntegrityError as e:
            translated = self._translate(e, uid, identifier)
            if translated is None:
                raise
            raise translated from e

        logger.info("Registered {} credential {} for user {}", self.name, created.cid, uid)
        return created.cid

    def update_secret(self, cid: str, new_secret: bytes) -> CredentialInstance:
        instance = self._require(cid)
        instance.secret = new_secret
        instance.last_update = utc_now()
        logger.info("Updated secret of {} credential {}", self.name, cid)
        return self._credentials.update(instance)

    def update_identifier(self, cid: str, identifier: str) -> CredentialInstance:
        instance = self._require(cid)
        identifier = self._normalize(identifier)
        if identifier == instance.identifier:
            return instance
        existing = self._credentials.get_by_identifier(self.name, identifier)
        if existing is not None:
            raise DuplicateIdentity(
                f"{self.method.identifier_label} '{identifier}' is already in use",
                details={"method": self.name, "identifier": identifier},
            )
        instance.identifier = identifier
        instance.last_update = utc_now()
        try:
            updated = self._credentials.update(instance)
        except IntegrityError as e:
            translated = self._translate(e, instance.uid, identifier)
            if translated is None:
                raise
            raise translated from e
        logger.info("Changed {} of credential {}", self.method.identifier_label, cid)
        return updated

    def update_attributes(self, cid: str, attributes: dict[str, Any]) -> CredentialInstance:
        instance = self._require(cid)
        self._check_declared(attributes)
        instance.attributes = {**instance.attributes, **attributes}
        instance.last_update = utc_now()
        return self._credentials.update(instance)

    def mark_verified(self, cid: str) -> CredentialInstance:
        instance = self._require(cid)
        if instance.verified:
            return instance
        instance.verified = True
        instance.last_update = utc_now()
        logger.info("Verified {} credential {}", self.name, cid)
        return self._credentials.update(instance)

    def set_disabled(self, cid: str, disabled: bool) -> CredentialInstance:
        instance = self._require(cid)
        if instance.disabled == disabled:
            return instance
        instance.disabled = disabled
        instance.last_update = utc_now()
        logger.info(
            "{} {} credential {}", "Disabled" if disabled else "Enabled", self.name, cid
        )
        return self._credentials.update(instance)

    def touch_authentication(self, cid: str) -> CredentialInstance:
        instance = self._require(cid)
        if instance.disabled:
            raise Disabled(
                f"Credential {cid} is disabled", details={"cid": cid, "method": self.name}
            )
        instance.last_authentication = utc_now()
        logger.debug("Authenticated with {} credential {}", self.name, cid)
        return self._credentials.update(instance)

    def delete(self, cid: str) -> None:
        self._require(cid)
        self._credentials.delete(cid)
        logger.info("Deleted {} credential {}", self.name, cid)
