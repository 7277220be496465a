"""Reversible structural transformations of the credential data model.

Credential methods are rows, so "structural" here means the set of known
methods, their declared attribute fields and the slots every link row keeps
per method. Each transformation works inside the transaction the engine opens
for it and must leave invariants intact for rows it does not own.
"""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger
from sqlmodel import Session

from src.authlink.core.errors import TransformationPrecondition
from src.authlink.entities.core.credential import (
    CredentialMethod,
    CredentialMethodRepository,
    CredentialRepository,
)
from src.authlink.entities.core.credential_link import CredentialLinkRepository


class Transformation(ABC):
    """One forward/reverse pair in the schema history."""

    name: str

    def precondition(self, session: Session) -> None:
        """Raise ``TransformationPrecondition`` if ``forward`` must not run."""

    def reverse_precondition(self, session: Session) -> None:
        """Raise ``TransformationPrecondition`` if ``reverse`` must not run."""

    @abstractmethod
    def forward(self, session: Session) -> None: ...

    @abstractmethod
    def reverse(self, session: Session) -> None: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _drop_method(session: Session, method: str) -> None:
    """Remove slots, instances and the registry row of ``method``."""
    slots = CredentialLinkRepository(session).drop_slots_for_method(method)
    instances = CredentialRepository(session).delete_for_method(method)
    CredentialMethodRepository(session).delete(method)
    logger.info(
        "Dropped method {} ({} slot(s), {} instance(s))", method, slots, instances
    )


class AddMethod(Transformation):
    """Introduce a credential method with an empty store.

    Every existing link row gains a null slot for the new method; nothing
    else is touched.
    """

    def __init__(self, definition: CredentialMethod) -> None:
        self.definition = definition
        self.name = f"add_method_{definition.name}"

    def precondition(self, session: Session) -> None:
        if CredentialMethodRepository(session).get(self.definition.name) is not None:
            raise TransformationPrecondition(
                f"Method '{self.definition.name}' already exists",
                details={"method": self.definition.name},
            )

    def forward(self, session: Session) -> None:
        methods = CredentialMethodRepository(session)
        if methods.get(self.definition.name) is None:
            methods.create(self.definition)
        added = CredentialLinkRepository(session).add_slots_for_method(self.definition.name)
        logger.info("Added method {} ({} slot(s))", self.definition.name, added)

    def reverse_precondition(self, session: Session) -> None:
        linked = CredentialLinkRepository(session).count_linked(self.definition.name)
        if linked:
            raise TransformationPrecondition(
                f"Method '{self.definition.name}' is still linked by {linked} user(s)",
                details={"method": self.definition.name, "linked": linked},
            )

    def reverse(self, session: Session) -> None:
        _drop_method(session, self.definition.name)


class AddField(Transformation):
    """Declare an attribute field on a method and backfill its default."""

    def __init__(self, method: str, field: str, default: Any = None) -> None:
        self.method = method
        self.field = field
        self.default = default
        self.name = f"add_field_{method}_{field}"

    def _definition(self, session: Session) -> CredentialMethod:
        definition = CredentialMethodRepository(session).get(self.method)
        if definition is None:
            raise TransformationPrecondition(
                f"Method '{self.method}' does not exist",
                details={"method": self.method, "field": self.field},
            )
        return definition

    def precondition(self, session: Session) -> None:
        definition = self._definition(session)
        if self.field in definition.field_defaults:
            raise TransformationPrecondition(
                f"Method '{self.method}' already declares '{self.field}'",
                details={"method": self.method, "field": self.field},
            )

    def forward(self, session: Session) -> None:
        definition = self._definition(session)
        CredentialMethodRepository(session).set_field_defaults(
            self.method, {**definition.field_defaults, self.field: self.default}
        )

        credentials = CredentialRepository(session)
        backfilled = 0
        for instance in credentials.list_for_method(self.method):
            if self.field in instance.attributes:
                continue
            instance.attributes = {**instance.attributes, self.field: self.default}
            credentials.update(instance)
            backfilled += 1
        logger.info("Added field {}.{} ({} backfilled)", self.method, self.field, backfilled)

    def reverse_precondition(self, session: Session) -> None:
        self._definition(session)

    def reverse(self, session: Session) -> None:
        definition = self._definition(session)
        field_defaults = dict(definition.field_defaults)
        field_defaults.pop(self.field, None)
        CredentialMethodRepository(session).set_field_defaults(self.method, field_defaults)

        credentials = CredentialRepository(session)
        for instance in credentials.list_for_method(self.method):
            if self.field not in instance.attributes:
                continue
            attributes = dict(instance.attributes)
            del attributes[self.field]
            instance.attributes = attributes
            credentials.update(instance)
        logger.info("Removed field {}.{}", self.method, self.field)


class RemoveMethod(Transformation):
    """Retire a credential method.

    Refuses to run while any user still links an instance of the method,
    unless ``cascade`` is set, in which case those pointers are cleared first.
    The reverse step brings the method back with an empty store; removed
    instances are not restored.
    """

    def __init__(self, definition: CredentialMethod, cascade: bool = False) -> None:
        self.definition = definition
        self.cascade = cascade
        self.name = f"remove_method_{definition.name}"

    def precondition(self, session: Session) -> None:
        if CredentialMethodRepository(session).get(self.definition.name) is None:
            raise TransformationPrecondition(
                f"Method '{self.definition.name}' does not exist",
                details={"method": self.definition.name},
            )
        if self.cascade:
            return
        linked = CredentialLinkRepository(session).count_linked(self.definition.name)
        if linked:
            raise TransformationPrecondition(
                f"Method '{self.definition.name}' is still linked by {linked} user(s)",
                details={"method": self.definition.name, "linked": linked},
            )

    def forward(self, session: Session) -> None:
        if CredentialMethodRepository(session).get(self.definition.name) is None:
            return
        if self.cascade:
            cleared = CredentialLinkRepository(session).clear_method_pointers(
                self.definition.name
            )
            if cleared:
                logger.warning(
                    "Cleared {} live pointer(s) to method {}", cleared, self.definition.name
                )
        _drop_method(session, self.definition.name)

    def reverse(self, session: Session) -> None:
        AddMethod(self.definition).forward(session)
