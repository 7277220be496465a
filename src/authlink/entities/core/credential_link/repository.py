from collections import defaultdict

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from src.authlink.entities.core.credential_link.entity import CredentialLink
from src.authlink.entities.core.credential_link.table import (
    CredentialLinkSlotTable,
    CredentialLinkTable,
)


class CredentialLinkRepository:
    """Data-access layer for link rows and their per-method slots."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _slot(
        self, uid: str, method: str, *, lock: bool = False
    ) -> CredentialLinkSlotTable | None:
        statement = select(CredentialLinkSlotTable).where(
            (CredentialLinkSlotTable.uid == uid)
            & (CredentialLinkSlotTable.method == method)
        )
        if lock:
            statement = statement.with_for_update()
        return self._session.exec(statement.execution_options(populate_existing=True)).first()

    def exists(self, uid: str) -> bool:
        return self._session.get(CredentialLinkTable, uid) is not None

    def get(self, uid: str) -> CredentialLink | None:
        row = self._session.get(CredentialLinkTable, uid)
        if row is None:
            return None
        slots = self._session.exec(
            select(CredentialLinkSlotTable)
            .where(CredentialLinkSlotTable.uid == uid)
            .execution_options(populate_existing=True)
        )
        return CredentialLink(
            uid=row.uid,
            pointers={slot.method: slot.cid for slot in slots},
            created_at=row.created_at,
        )

    def list_all(self) -> list[CredentialLink]:
        rows = self._session.exec(
            select(CredentialLinkTable).order_by(CredentialLinkTable.uid)
        ).all()
        pointers: dict[str, dict[str, str | None]] = defaultdict(dict)
        for slot in self._session.exec(
            select(CredentialLinkSlotTable).execution_options(populate_existing=True)
        ):
            pointers[slot.uid][slot.method] = slot.cid
        return [
            CredentialLink(uid=row.uid, pointers=pointers[row.uid], created_at=row.created_at)
            for row in rows
        ]

    def ensure(self, uid: str, methods: list[str]) -> bool:
        """Create the link row with a null slot per method unless it exists."""
        if self.exists(uid):
            return False
        self._session.add(CredentialLinkTable(uid=uid))
        self._session.flush()
        for method in methods:
            self._session.add(CredentialLinkSlotTable(uid=uid, method=method, cid=None))
        self._session.flush()
        return True

    def get_pointer(self, uid: str, method: str, *, lock: bool = False) -> str | None:
        slot = self._slot(uid, method, lock=lock)
        return None if slot is None else slot.cid

    def set_pointer(self, uid: str, method: str, cid: str | None) -> str | None:
        """Point the slot at ``cid`` and return the previous pointer."""
        slot = self._slot(uid, method, lock=True)
        if slot is None:
            slot = CredentialLinkSlotTable(uid=uid, method=method, cid=None)
        previous = slot.cid
        slot.cid = cid
        self._session.add(slot)
        self._session.flush()
        return previous

    def clear_pointers_to(self, cid: str) -> int:
        result = self._session.exec(
            update(CredentialLinkSlotTable)
            .where(CredentialLinkSlotTable.cid == cid)
            .values(cid=None)
        )
        self._session.flush()
        return result.rowcount

    def clear_method_pointers(self, method: str) -> int:
        result = self._session.exec(
            update(CredentialLinkSlotTable)
            .where(
                (CredentialLinkSlotTable.method == method)
                & (CredentialLinkSlotTable.cid.is_not(None))
            )
            .values(cid=None)
        )
        self._session.flush()
        return result.rowcount

    def count_linked(self, method: str) -> int:
        statement = (
            select(func.count())
            .select_from(CredentialLinkSlotTable)
            .where(
                (CredentialLinkSlotTable.method == method)
                & (CredentialLinkSlotTable.cid.is_not(None))
            )
        )
        return self._session.exec(statement).one()

    def add_slots_for_method(self, method: str) -> int:
        """Give every existing link row a null slot for ``method``."""
        have_slot = select(CredentialLinkSlotTable.uid).where(
            CredentialLinkSlotTable.method == method
        )
        missing = self._session.exec(
            select(CredentialLinkTable.uid).where(CredentialLinkTable.uid.not_in(have_slot))
        ).all()
        for uid in missing:
            self._session.add(CredentialLinkSlotTable(uid=uid, method=method, cid=None))
        self._session.flush()
        return len(missing)

    def drop_slots_for_method(self, method: str) -> int:
        result = self._session.exec(
            delete(CredentialLinkSlotTable).where(CredentialLinkSlotTable.method == method)
        )
        self._session.flush()
        return result.rowcount

    def delete(self, uid: str) -> bool:
        self._session.exec(
            delete(CredentialLinkSlotTable).where(CredentialLinkSlotTable.uid == uid)
        )
        result = self._session.exec(
            delete(CredentialLinkTable).where(CredentialLinkTable.uid == uid)
        )
        self._session.flush()
        return result.rowcount > 0
