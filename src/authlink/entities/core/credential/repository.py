from sqlalchemy import delete, func
from sqlmodel import Session, select

from src.authlink.entities.core.credential.entity import CredentialInstance, CredentialMethod
from src.authlink.entities.core.credential.table import CredentialMethodTable, CredentialTable


class CredentialMethodRepository:
    """Data-access layer for the credential method registry."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, name: str) -> CredentialMethod | None:
        row = self._session.get(CredentialMethodTable, name)
        if row is None:
            return None
        return CredentialMethod.model_validate(row, from_attributes=True)

    def list_all(self) -> list[CredentialMethod]:
        rows = self._session.exec(
            select(CredentialMethodTable).order_by(CredentialMethodTable.name)
        )
        return [CredentialMethod.model_validate(row, from_attributes=True) for row in rows]

    def names(self) -> list[str]:
        return list(
            self._session.exec(
                select(CredentialMethodTable.name).order_by(CredentialMethodTable.name)
            )
        )

    def create(self, method: CredentialMethod) -> CredentialMethod:
        row = CredentialMethodTable(
            name=method.name,
            kind=str(method.kind),
            identifier_label=method.identifier_label,
            case_insensitive=method.case_insensitive,
            field_defaults=dict(method.field_defaults),
        )
        self._session.add(row)
        self._session.flush()
        return CredentialMethod.model_validate(row, from_attributes=True)

    def set_field_defaults(self, name: str, field_defaults: dict) -> None:
        row = self._session.get(CredentialMethodTable, name)
        if row is None:
            raise LookupError(name)
        # JSON columns are not mutation-tracked; always assign a new dict
        row.field_defaults = dict(field_defaults)
        self._session.add(row)
        self._session.flush()

    def delete(self, name: str) -> bool:
        row = self._session.get(CredentialMethodTable, name)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True


class CredentialRepository:
    """Data-access layer for credential instances of every method."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _row(self, cid: str) -> CredentialTable | None:
        return self._session.get(CredentialTable, cid)

    def get(self, cid: str) -> CredentialInstance | None:
        row = self._row(cid)
        if row is None:
            return None
        return CredentialInstance.model_validate(row, from_attributes=True)

    def get_by_owner(self, method: str, uid: str) -> CredentialInstance | None:
        statement = select(CredentialTable).where(
            (CredentialTable.method == method) & (CredentialTable.uid == uid)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return CredentialInstance.model_validate(row, from_attributes=True)

    def get_by_identifier(self, method: str, identifier: str) -> CredentialInstance | None:
        statement = select(CredentialTable).where(
            (CredentialTable.method == method)
            & (CredentialTable.identifier == identifier)
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return CredentialInstance.model_validate(row, from_attributes=True)

    def list_for_user(self, uid: str) -> list[CredentialInstance]:
        statement = (
            select(CredentialTable)
            .where(CredentialTable.uid == uid)
            .order_by(CredentialTable.method)
        )
        return [
            CredentialInstance.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def list_for_method(self, method: str) -> list[CredentialInstance]:
        statement = (
            select(CredentialTable)
            .where(CredentialTable.method == method)
            .order_by(CredentialTable.cid)
        )
        return [
            CredentialInstance.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def count_for_method(self, method: str) -> int:
        statement = select(func.count()).select_from(CredentialTable).where(
            CredentialTable.method == method
        )
        return self._session.exec(statement).one()

    def create(self, instance: CredentialInstance) -> CredentialInstance:
        row = CredentialTable.model_validate(instance, from_attributes=True)
        self._session.add(row)
        self._session.flush()
        return CredentialInstance.model_validate(row, from_attributes=True)

    def update(self, instance: CredentialInstance) -> CredentialInstance:
        row = self._row(instance.cid)
        if row is None:
            raise LookupError(instance.cid)
        row.identifier = instance.identifier
        row.secret = instance.secret
        row.attributes = dict(instance.attributes)
        row.verified = instance.verified
        row.disabled = instance.disabled
        row.last_update = instance.last_update
        row.last_authentication = instance.last_authentication
        self._session.add(row)
        self._session.flush()
        return CredentialInstance.model_validate(row, from_attributes=True)

    def delete(self, cid: str) -> bool:
        result = self._session.exec(delete(CredentialTable).where(CredentialTable.cid == cid))
        self._session.flush()
        return result.rowcount > 0

    def delete_for_user(self, uid: str) -> int:
        result = self._session.exec(delete(CredentialTable).where(CredentialTable.uid == uid))
        self._session.flush()
        return result.rowcount

    def delete_for_method(self, method: str) -> int:
        result = self._session.exec(
            delete(CredentialTable).where(CredentialTable.method == method)
        )
        self._session.flush()
        return result.rowcount
