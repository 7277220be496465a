"""Tests for CredentialMethodStore."""

import pytest
from sqlmodel import Session

from src.authlink.core.errors import (
    AlreadyRegistered,
    Disabled,
    DuplicateIdentity,
    InvalidField,
    MethodMismatch,
    NotFound,
)
from src.authlink.core.services.credential import CredentialMethodStore
from src.authlink.core.services.user.user_registry import UserRegistryService


@pytest.fixture
def users(seeded_session: Session) -> UserRegistryService:
    return UserRegistryService(seeded_session)


@pytest.fixture
def email_store(seeded_session: Session) -> CredentialMethodStore:
    return CredentialMethodStore(seeded_session, "email_password")


class TestRegister:
    """Registration rules of a single method store."""

    def test_register_creates_unverified_enabled_instance(self, users, email_store):
        user = users.create()
        cid = email_store.register(user.uid, "alice@example.com", b"hash")

        instance = email_store.get(cid)
        assert instance.uid == user.uid
        assert instance.method == "email_password"
        assert instance.secret == b"hash"
        assert instance.verified is False
        assert instance.disabled is False
        assert instance.created == instance.last_update
        assert instance.last_authentication is None

    def test_email_identifiers_are_lower_cased(self, users, email_store):
        user = users.create()
        cid = email_store.register(user.uid, "Alice@Example.com", b"hash")

        assert email_store.get(cid).identifier == "alice@example.com"
        assert email_store.get_by_identifier("ALICE@example.COM").cid == cid

    def test_usernames_are_case_sensitive(self, seeded_session, users):
        store = CredentialMethodStore(seeded_session, "username_password")
        alice, other = users.create(), users.create()
        store.register(alice.uid, "Alice", b"hash")

        cid = store.register(other.uid, "alice", b"hash")
        assert store.get(cid).identifier == "alice"

    def test_second_registration_for_same_user(self, users, email_store):
        """A user holds at most one instance per method."""
        user = users.create()
        email_store.register(user.uid, "alice@example.com", b"hash")

        with pytest.raises(AlreadyRegistered):
            email_store.register(user.uid, "other@example.com", b"hash")

    def test_already_registered_checked_before_duplicate_identity(self, users, email_store):
        user = users.create()
        email_store.register(user.uid, "alice@example.com", b"hash")

        with pytest.raises(AlreadyRegistered):
            email_store.register(user.uid, "alice@example.com", b"hash")

    def test_identifier_taken_by_another_user(self, users, email_store):
        alice, bob = users.create(), users.create()
        email_store.register(alice.uid, "alice@example.com", b"hash")

        with pytest.raises(DuplicateIdentity) as exc_info:
            email_store.register(bob.uid, "ALICE@example.com", b"hash")

        assert exc_info.value.details["identifier"] == "alice@example.com"

    def test_unknown_user(self, email_store):
        with pytest.raises(NotFound):
            email_store.register("ghost", "ghost@example.com", b"hash")

    def test_unknown_method(self, seeded_session):
        with pytest.raises(NotFound):
            CredentialMethodStore(seeded_session, "webauthn")

    def test_blank_identifier(self, users, email_store):
        with pytest.raises(InvalidField):
            email_store.register(users.create().uid, "   ", b"hash")

    def test_declared_fields_take_defaults(self, seeded_session, users):
        store = CredentialMethodStore(seeded_session, "github_oauth")
        defaulted = store.register(users.create().uid, "1001", b"token")
        explicit = store.register(users.create().uid, "1002", b"token", {"username": "octocat"})

        assert store.get(defaulted).attributes == {"username": None}
        assert store.get(explicit).attributes == {"username": "octocat"}

    def test_undeclared_field_rejected(self, users, email_store):
        with pytest.raises(InvalidField):
            email_store.register(users.create().uid, "a@example.com", b"hash", {"nickname": "al"})


class TestLifecycle:
    """Updates, verification, disabling and deletion."""

    @pytest.fixture
    def cid(self, users, email_store) -> str:
        return email_store.register(users.create().uid, "alice@example.com", b"hash")

    def test_update_secret_keeps_verification(self, email_store, cid):
        email_store.mark_verified(cid)
        updated = email_store.update_secret(cid, b"new-hash")

        assert updated.secret == b"new-hash"
        assert updated.verified is True
        assert email_store.get(cid).secret == b"new-hash"

    def test_update_identifier(self, users, email_store, cid):
        updated = email_store.update_identifier(cid, "Alice.New@example.com")
        assert updated.identifier == "alice.new@example.com"

        other = email_store.register(users.create().uid, "bob@example.com", b"hash")
        with pytest.raises(DuplicateIdentity):
            email_store.update_identifier(other, "alice.new@example.com")

    def test_mark_verified_is_idempotent(self, email_store, cid):
        first = email_store.mark_verified(cid)
        second = email_store.mark_verified(cid)

        assert first.verified and second.verified
        assert second.last_update == first.last_update

    def test_disable_and_enable(self, email_store, cid):
        assert email_store.set_disabled(cid, True).disabled is True
        assert email_store.set_disabled(cid, True).disabled is True
        assert email_store.set_disabled(cid, False).disabled is False

    def test_touch_authentication(self, email_store, cid):
        touched = email_store.touch_authentication(cid)
        assert touched.last_authentication is not None

    def test_touch_disabled_instance(self, email_store, cid):
        email_store.set_disabled(cid, True)

        with pytest.raises(Disabled):
            email_store.touch_authentication(cid)

    def test_delete(self, email_store, cid):
        email_store.delete(cid)

        with pytest.raises(NotFound):
            email_store.get(cid)
        with pytest.raises(NotFound):
            email_store.delete(cid)

    def test_cid_of_another_method(self, seeded_session, cid):
        github_store = CredentialMethodStore(seeded_session, "github_oauth")

        with pytest.raises(MethodMismatch):
            github_store.get(cid)

    def test_lookups(self, email_store, cid):
        instance = email_store.get(cid)

        assert email_store.get_by_uid(instance.uid).cid == cid
        assert email_store.get_by_identifier("nobody@example.com") is None
        assert [item.cid for item in email_store.list_all()] == [cid]
