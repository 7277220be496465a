from sqlalchemy import func
from sqlmodel import Session, select

from src.authlink.entities.core.schema_version.entity import SchemaVersion
from src.authlink.entities.core.schema_version.table import SchemaVersionTable


class SchemaVersionRepository:
    """Data-access layer for applied schema transformation markers."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def applied(self) -> list[SchemaVersion]:
        rows = self._session.exec(
            select(SchemaVersionTable).order_by(SchemaVersionTable.version)
        )
        return [SchemaVersion.model_validate(row, from_attributes=True) for row in rows]

    def is_applied(self, version: int) -> bool:
        return self._session.get(SchemaVersionTable, version) is not None

    def current(self) -> int:
        latest = self._session.exec(select(func.max(SchemaVersionTable.version))).one()
        return latest or 0

    def record(self, version: int, name: str) -> SchemaVersion:
        row = SchemaVersionTable(version=version, name=name)
        self._session.add(row)
        self._session.flush()
        return SchemaVersion.model_validate(row, from_attributes=True)

    def remove(self, version: int) -> bool:
        row = self._session.get(SchemaVersionTable, version)
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True
