from sqlmodel import Session, select

from src.authlink.entities.core._base import utc_now
from src.authlink.entities.core.user.entity import User
from src.authlink.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, uid: str) -> User | None:
        row = self._session.get(UserTable, uid)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def exists(self, uid: str) -> bool:
        return self._session.get(UserTable, uid) is not None

    def list_all(self) -> list[User]:
        rows = self._session.exec(select(UserTable).order_by(UserTable.created_at, UserTable.uid))
        return [User.model_validate(row, from_attributes=True) for row in rows]

    def create(self, user: User) -> User:
        row = UserTable.model_validate(user, from_attributes=True)
        self._session.add(row)
        self._session.flush()
        return User.model_validate(row, from_attributes=True)

    def update(self, user: User) -> User:
        row = self._session.get(UserTable, user.uid)
        if row is None:
            raise LookupError(user.uid)
        row.profile = user.profile
        row.updated_at = utc_now()
        self._session.add(row)
        self._session.flush()
        return User.model_validate(row, from_attributes=True)

    def delete(self, uid: str) -> bool:
        row = self._session.get(UserTable, uid)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True
