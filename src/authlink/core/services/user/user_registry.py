from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from src.authlink.core.errors import NotFound, ReferentialIntegrityViolation, UserExists
from src.authlink.entities.core.user import User, UserRepository


class UserRegistryService:
    """Owner of the canonical identity record.

    Knows nothing about credentials; the database refuses to delete a user
    that is still referenced, and that refusal surfaces here as
    ``ReferentialIntegrityViolation``.
    """

    def __init__(self, session: Session) -> None:
        self._users = UserRepository(session)

    def create(self, profile: dict[str, Any] | None = None, uid: str | None = None) -> User:
        if uid is not None and self._users.exists(uid):
            raise UserExists(f"User {uid} already exists", details={"uid": uid})

        user = User(profile=profile) if uid is None else User(uid=uid, profile=profile)
        try:
            created = self._users.create(user)
        except IntegrityError as e:
            raise UserExists(
                f"User {user.uid} already exists", details={"uid": user.uid}
            ) from e
        logger.info("Created user {}", created.uid)
        return created

    def find(self, uid: str) -> User | None:
        return self._users.get(uid)

    def get(self, uid: str) -> User:
        user = self._users.get(uid)
        if user is None:
            raise NotFound(f"User {uid} does not exist", details={"uid": uid})
        return user

    def list_all(self) -> list[User]:
        return self._users.list_all()

    def update_profile(self, uid: str, profile: dict[str, Any] | None) -> User:
        user = self.get(uid)
        user.profile = profile
        return self._users.update(user)

    def delete(self, uid: str) -> None:
        self.get(uid)
        try:
            self._users.delete(uid)
        except IntegrityError as e:
            raise ReferentialIntegrityViolation(
                f"User {uid} is still referenced by credentials",
                details={"uid": uid},
            ) from e
        logger.info("Deleted user {}", uid)
