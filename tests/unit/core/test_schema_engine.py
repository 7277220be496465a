"""Tests for schema transformations and the evolution engine."""

import pytest

from src.authlink.core.errors import InvariantViolation, TransformationPrecondition
from src.authlink.core.services.credential import CredentialService
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.schema import (
    AddField,
    AddMethod,
    RemoveMethod,
    SchemaEvolutionEngine,
    Transformation,
    baseline_transformations,
    find_violations,
    snapshot_state,
)
from src.authlink.entities.core.credential import (
    CredentialMethod,
    CredentialMethodRepository,
    MethodKind,
)
from src.authlink.entities.core.credential_link import CredentialLinkRepository

WEBAUTHN = CredentialMethod(name="webauthn", kind=MethodKind.PASSWORD, identifier_label="handle")
GITLAB = CredentialMethod(name="gitlab_oauth", kind=MethodKind.OAUTH, identifier_label="provider_id")


def _snapshot(db: DbSessionService) -> dict:
    return db.run_in_transaction(snapshot_state)


def _populate(service: CredentialService) -> dict[str, str]:
    """Alice with a linked email, Bob with an unlinked username credential."""
    alice, alice_email = service.enroll("email_password", "alice@example.com", b"a")
    bob = service.create_user({"name": "Bob"})
    bob_username = service.register(bob.uid, "username_password", "bob", b"b")
    github = service.register(alice.uid, "github_oauth", "1001", b"t", {"username": "alice"})
    service.link(alice.uid, "github_oauth", github)
    return {"alice": alice.uid, "bob": bob.uid, "alice_email": alice_email, "bob_username": bob_username}


class _Corrupting(Transformation):
    """Points a slot at a credential of the wrong method."""

    name = "corrupt"

    def __init__(self, uid: str, cid: str) -> None:
        self.uid = uid
        self.cid = cid

    def forward(self, session) -> None:
        CredentialLinkRepository(session).set_pointer(self.uid, "username_password", self.cid)

    def reverse(self, session) -> None:
        CredentialLinkRepository(session).set_pointer(self.uid, "username_password", None)


class TestEngineSequencing:
    def test_fresh_database_is_at_version_zero(self, schema_engine: SchemaEvolutionEngine):
        assert schema_engine.current_version() == 0
        assert schema_engine.head == len(baseline_transformations())
        assert [entry.version for entry in schema_engine.pending()] == [1, 2, 3, 4]

    def test_apply_next_forward_in_order(self, db, schema_engine: SchemaEvolutionEngine):
        assert schema_engine.apply_next_forward() == 1
        assert schema_engine.apply_next_forward() == 2

        status = schema_engine.status()
        assert [entry.applied for entry in status] == [True, True, False, False]
        assert status[0].name == "add_method_email_password"
        assert status[0].applied_at is not None
        names = db.run_in_transaction(lambda s: CredentialMethodRepository(s).names())
        assert names == ["email_password", "github_oauth"]

    def test_upgrade_reaches_head(self, db, schema_engine: SchemaEvolutionEngine):
        assert schema_engine.upgrade() == [1, 2, 3, 4]
        assert schema_engine.current_version() == 4
        assert schema_engine.pending() == []

        github = db.run_in_transaction(lambda s: CredentialMethodRepository(s).get("github_oauth"))
        assert github.field_defaults == {"username": None}

    def test_replay_at_head_is_noop(self, baseline_db, schema_engine: SchemaEvolutionEngine):
        before = _snapshot(baseline_db)

        assert schema_engine.apply_next_forward() is None
        assert schema_engine.upgrade() == []
        assert _snapshot(baseline_db) == before

    def test_upgrade_to_target(self, schema_engine: SchemaEvolutionEngine):
        assert schema_engine.upgrade(2) == [1, 2]
        assert schema_engine.current_version() == 2

    def test_downgrade(self, schema_engine: SchemaEvolutionEngine):
        schema_engine.upgrade()

        assert schema_engine.downgrade(1) == [4, 3, 2]
        assert schema_engine.current_version() == 1
        assert schema_engine.apply_last_reverse() == 1
        assert schema_engine.apply_last_reverse() is None

    def test_target_out_of_range(self, schema_engine: SchemaEvolutionEngine):
        with pytest.raises(ValueError):
            schema_engine.upgrade(99)
        with pytest.raises(ValueError):
            schema_engine.downgrade(-1)

    def test_invariant_violation_aborts_step(self, service, baseline_db):
        ids = _populate(service)
        engine = SchemaEvolutionEngine(
            baseline_db,
            baseline_transformations() + [_Corrupting(ids["alice"], ids["alice_email"])],
        )

        with pytest.raises(InvariantViolation):
            engine.apply_next_forward()

        assert engine.current_version() == 4
        assert service.active_credential(ids["alice"], "username_password") is None


class TestAddMethod:
    def test_existing_link_rows_gain_null_slot(self, service, baseline_db):
        ids = _populate(service)
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [AddMethod(WEBAUTHN)])

        assert engine.apply_next_forward() == 5

        link = service.get_link(ids["alice"])
        assert link.pointers["webauthn"] is None
        assert link.pointers["email_password"] == ids["alice_email"]
        assert service.get_link(ids["bob"]).pointers["webauthn"] is None

    def test_forward_then_reverse_restores_snapshot(self, service, baseline_db):
        _populate(service)
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [AddMethod(WEBAUTHN)])
        before = _snapshot(baseline_db)

        engine.apply_next_forward()
        assert _snapshot(baseline_db) != before
        engine.apply_last_reverse()

        assert _snapshot(baseline_db) == before

    def test_forward_is_idempotent(self, baseline_db):
        transformation = AddMethod(WEBAUTHN)
        baseline_db.run_in_transaction(transformation.forward)
        before = _snapshot(baseline_db)

        baseline_db.run_in_transaction(transformation.forward)

        assert _snapshot(baseline_db) == before

    def test_reverse_blocked_while_linked(self, service, baseline_db):
        ids = _populate(service)
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [AddMethod(WEBAUTHN)])
        engine.apply_next_forward()
        cid = service.register(ids["bob"], "webauthn", "bob-key", b"k")
        service.link(ids["bob"], "webauthn", cid)

        with pytest.raises(TransformationPrecondition):
            engine.apply_last_reverse()
        assert engine.current_version() == 5

        service.unlink(ids["bob"], "webauthn")
        assert engine.apply_last_reverse() == 5
        assert [c.method for c in service.list_credentials(ids["bob"])] == ["username_password"]

    def test_existing_method_rejected(self, service, baseline_db):
        """Reversing a re-added method must not drop the store that was already there."""
        ids = _populate(service)
        email = service.list_methods()[0]
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [AddMethod(email)])
        before = _snapshot(baseline_db)

        with pytest.raises(TransformationPrecondition):
            engine.apply_next_forward()

        assert engine.current_version() == 4
        assert _snapshot(baseline_db) == before
        assert service.active_credential(ids["alice"], "email_password") == ids["alice_email"]


class TestAddField:
    def test_backfills_default_and_reverse_strips_it(self, service, baseline_db):
        ids = _populate(service)
        engine = SchemaEvolutionEngine(
            baseline_db, baseline_transformations() + [AddField("github_oauth", "avatar_url", "")]
        )
        before = _snapshot(baseline_db)

        engine.apply_next_forward()
        github = service.list_credentials(ids["alice"])
        attributes = {item.method: item.attributes for item in github}
        assert attributes["github_oauth"] == {"username": "alice", "avatar_url": ""}

        engine.apply_last_reverse()
        assert _snapshot(baseline_db) == before

    def test_unknown_method(self, baseline_db):
        engine = SchemaEvolutionEngine(
            baseline_db, baseline_transformations() + [AddField("webauthn", "label")]
        )

        with pytest.raises(TransformationPrecondition):
            engine.apply_next_forward()


    def test_existing_field_rejected(self, service, baseline_db):
        """Values that predate the step survive because the step never runs."""
        ids = _populate(service)
        engine = SchemaEvolutionEngine(
            baseline_db, baseline_transformations() + [AddField("github_oauth", "username", "x")]
        )
        before = _snapshot(baseline_db)

        with pytest.raises(TransformationPrecondition):
            engine.apply_next_forward()

        assert engine.current_version() == 4
        assert _snapshot(baseline_db) == before
        github = [c for c in service.list_credentials(ids["alice"]) if c.method == "github_oauth"]
        assert github[0].attributes == {"username": "alice"}


class TestRemoveMethod:
    def test_blocked_by_live_pointer(self, service, baseline_db):
        ids = _populate(service)
        github = service.list_methods()[1]
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [RemoveMethod(github)])

        with pytest.raises(TransformationPrecondition):
            engine.apply_next_forward()

        assert engine.current_version() == 4
        assert service.active_credential(ids["alice"], "github_oauth") is not None

    def test_cascade_clears_pointers(self, service, baseline_db):
        ids = _populate(service)
        github = service.list_methods()[1]
        engine = SchemaEvolutionEngine(
            baseline_db, baseline_transformations() + [RemoveMethod(github, cascade=True)]
        )

        assert engine.apply_next_forward() == 5

        link = service.get_link(ids["alice"])
        assert "github_oauth" not in link.pointers
        assert link.pointers["email_password"] == ids["alice_email"]
        assert [m.name for m in service.list_methods()] == ["email_password", "username_password"]
        assert [c.method for c in service.list_credentials(ids["alice"])] == ["email_password"]

    def test_reverse_restores_empty_method(self, service, baseline_db):
        ids = _populate(service)
        username = service.list_methods()[2]
        engine = SchemaEvolutionEngine(baseline_db, baseline_transformations() + [RemoveMethod(username)])

        engine.apply_next_forward()
        assert service.list_credentials(ids["bob"]) == []

        engine.apply_last_reverse()
        assert service.get_link(ids["bob"]).pointers["username_password"] is None
        assert service.find_credential("username_password", "bob") is None


    def test_unknown_method_rejected(self, baseline_db):
        engine = SchemaEvolutionEngine(
            baseline_db, baseline_transformations() + [RemoveMethod(GITLAB)]
        )
        before = _snapshot(baseline_db)

        with pytest.raises(TransformationPrecondition):
            engine.apply_next_forward()

        assert engine.current_version() == 4
        assert _snapshot(baseline_db) == before


class TestInvariants:
    def test_baseline_with_data_is_sound(self, service, baseline_db):
        _populate(service)
        assert baseline_db.run_in_transaction(find_violations) == []

    def test_detects_slot_pointing_at_wrong_method(self, service, baseline_db):
        ids = _populate(service)

        def corrupt(session):
            _Corrupting(ids["alice"], ids["alice_email"]).forward(session)
            return find_violations(session)

        violations = baseline_db.run_in_transaction(corrupt)
        assert len(violations) == 1
        assert "username_password" in violations[0]

    def test_detects_missing_slot(self, service, baseline_db):
        ids = _populate(service)

        def drop(session):
            CredentialLinkRepository(session).drop_slots_for_method("username_password")
            return find_violations(session)

        violations = baseline_db.run_in_transaction(drop)
        assert any(ids["alice"] in violation for violation in violations)
