"""Sequential, versioned application of schema transformations."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlmodel import Session

from src.authlink.core.errors import TransformationPrecondition
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.schema.invariants import verify_invariants
from src.authlink.core.services.schema.transformations import Transformation
from src.authlink.entities.core.schema_version import SchemaVersionRepository


@dataclass(frozen=True)
class TransformationStatus:
    version: int
    name: str
    applied: bool
    applied_at: datetime | None = None


class SchemaEvolutionEngine:
    """Applies an ordered list of transformations one step at a time.

    Version ``n`` is the ``n``-th transformation (1-based); ``0`` is the empty
    schema. A step commits its changes and its ``schema_versions`` marker in
    the same transaction, under the exclusive side of the schema barrier, and
    only after every invariant has been re-checked. The only addressing modes
    are "apply next forward" and "apply last reverse".
    """

    def __init__(
        self, db: DbSessionService, transformations: Sequence[Transformation] | None = None
    ):
        if transformations is None:
            from src.authlink.core.services.schema.baseline import baseline_transformations

            transformations = baseline_transformations()
        self._db = db
        self._transformations = list(transformations)

    @property
    def transformations(self) -> list[Transformation]:
        return list(self._transformations)

    @property
    def head(self) -> int:
        return len(self._transformations)

    def current_version(self) -> int:
        return self._db.run_in_transaction(
            lambda session: SchemaVersionRepository(session).current()
        )

    def status(self) -> list[TransformationStatus]:
        applied = {
            marker.version: marker
            for marker in self._db.run_in_transaction(
                lambda session: SchemaVersionRepository(session).applied()
            )
        }
        return [
            TransformationStatus(
                version=version,
                name=transformation.name,
                applied=version in applied,
                applied_at=applied[version].applied_at if version in applied else None,
            )
            for version, transformation in enumerate(self._transformations, start=1)
        ]

    def pending(self) -> list[TransformationStatus]:
        return [entry for entry in self.status() if not entry.applied]

    def _apply_forward(self, session: Session, version: int) -> bool:
        markers = SchemaVersionRepository(session)
        transformation = self._transformations[version - 1]
        if markers.is_applied(version):
            logger.debug("Version {} ({}) already applied", version, transformation.name)
            return False

        missing = [earlier for earlier in range(1, version) if not markers.is_applied(earlier)]
        if missing:
            raise TransformationPrecondition(
                f"Cannot apply version {version} before {missing}",
                details={"version": version, "missing": missing},
            )

        transformation.precondition(session)
        transformation.forward(session)
        verify_invariants(session)
        markers.record(version, transformation.name)
        logger.info("Applied schema version {} ({})", version, transformation.name)
        return True

    def apply_next_forward(self) -> int | None:
        """Apply the first unapplied transformation; ``None`` when at head."""

        def work(session: Session) -> int | None:
            version = SchemaVersionRepository(session).current() + 1
            if version > self.head:
                return None
            self._apply_forward(session, version)
            return version

        return self._db.run_in_transaction(work, exclusive=True)

    def apply_last_reverse(self) -> int | None:
        """Revert the most recently applied transformation; ``None`` when empty."""

        def work(session: Session) -> int | None:
            markers = SchemaVersionRepository(session)
            version = markers.current()
            if version == 0:
                return None
            if version > self.head:
                raise TransformationPrecondition(
                    f"Version {version} is not known to this engine",
                    details={"version": version, "head": self.head},
                )

            transformation = self._transformations[version - 1]
            transformation.reverse_precondition(session)
            transformation.reverse(session)
            verify_invariants(session)
            markers.remove(version)
            logger.info("Reverted schema version {} ({})", version, transformation.name)
            return version

        return self._db.run_in_transaction(work, exclusive=True)

    def upgrade(self, target: int | None = None) -> list[int]:
        """Apply forward steps until ``target`` (default: head) is reached."""
        target = self.head if target is None else target
        if not 0 <= target <= self.head:
            raise ValueError(f"Target version must be between 0 and {self.head}")

        applied: list[int] = []
        while self.current_version() < target:
            version = self.apply_next_forward()
            if version is None:
                break
            applied.append(version)
        return applied

    def downgrade(self, target: int = 0) -> list[int]:
        """Apply reverse steps until the current version equals ``target``."""
        if not 0 <= target <= self.head:
            raise ValueError(f"Target version must be between 0 and {self.head}")

        reverted: list[int] = []
        while self.current_version() > target:
            version = self.apply_last_reverse()
            if version is None:
                break
            reverted.append(version)
        return reverted
