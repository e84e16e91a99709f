"""
Tests for the publication coordinator.
Covers every branch of the publish decision table, author registration,
and concurrent creates of the same package name.
"""
import threading
from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from nest_registry import crud
from nest_registry.core.config import settings
from nest_registry.core.database import build_engine
from nest_registry.core.errors import CREATED, UPDATED, ConflictError, InvalidError, NotAuthorizedError
from nest_registry.core.models import Base, Package
from nest_registry.services.publication import create_author, get_author_by_credential, publish_package

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_publication.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def test_db():
    """Create test database"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def alice_credential(db):
    _, credential = create_author(db, "alice", "alice-secret")
    return credential


@pytest.fixture
def bob_credential(db):
    _, credential = create_author(db, "bob", "bob-secret")
    return credential


def reload_package(db, name: str) -> Package:
    db.expire_all()
    return crud.find_package_by_canonical_name(db, name)


# ========== Author Registration ==========

class TestCreateAuthor:

    def test_create_author(self, db):
        author, credential = create_author(db, "Alice", "secret")

        assert author.name == "Alice"
        assert author.canonical_name == "alice"
        assert author.owned_packages == set()
        assert author.created_at is not None
        assert crud.find_author_by_credential(db, credential).id == author.id

    def test_secret_is_never_stored_in_clear(self, db):
        author, credential = create_author(db, "alice", "plain-secret")
        assert author.password_hash != "plain-secret"
        assert "plain-secret" not in author.password_hash
        assert author.credential_hash != credential

    def test_canonical_name_taken(self, db, alice_credential):
        with pytest.raises(ConflictError):
            create_author(db, "ALICE", "other")
        assert len(crud.list_authors(db)) == 1

    def test_invalid_name(self, db):
        with pytest.raises(InvalidError):
            create_author(db, "__", "secret")

    def test_credentials_differ_between_authors(self, alice_credential, bob_credential):
        assert alice_credential != bob_credential

    def test_get_author_by_credential(self, db, alice_credential):
        assert get_author_by_credential(db, alice_credential).name == "alice"
        with pytest.raises(NotAuthorizedError):
            get_author_by_credential(db, "forged")


# ========== Decision Table ==========

class TestPublishCreate:

    def test_create_new_package(self, db, alice_credential):
        """Test that a never-seen name reaches the create branch."""
        result = publish_package(
            db, alice_credential, "foo",
            description="first", repository="https://example.com/foo",
            locked=True, malicious=False, unlisted=True
        )
        assert result.ok is True
        assert result.outcome == CREATED
        assert result.message == "Success"

        package = reload_package(db, "foo")
        assert package.owner_name == "alice"
        assert package.description == "first"
        assert package.repository == "https://example.com/foo"
        assert package.locked is True
        assert package.malicious is False
        assert package.unlisted is True
        assert package.upload_names == []
        assert package.latest_version is None
        assert package.created_at == package.updated_at
        assert crud.get_author(db, "alice").owned_packages == {"foo"}

    def test_unknown_credential_cannot_create(self, db, alice_credential):
        result = publish_package(db, "forged-credential", "foo")

        assert result.ok is False
        assert result.error == "not_authorized"
        assert reload_package(db, "foo") is None

    def test_invalid_name_rejected(self, db, alice_credential):
        result = publish_package(db, alice_credential, "...")

        assert result.ok is False
        assert result.error == "invalid"
        assert crud.list_packages(db) == []

    def test_display_variant_of_taken_name_is_not_authorized(self, db, alice_credential, bob_credential):
        publish_package(db, alice_credential, "foo")
        result = publish_package(db, bob_credential, "FOO")

        assert result.error == "not_authorized"
        assert len(crud.list_packages(db)) == 1


class TestPublishUpdate:

    def test_owner_updates(self, db, alice_credential, monkeypatch):
        """Test that the owner reaches the update branch and only mutable fields change."""
        publish_package(db, alice_credential, "foo", description="v1", repository="r1", locked=True, malicious=True)
        before = reload_package(db, "foo")
        created_at = before.created_at

        later = datetime(2030, 1, 1, tzinfo=timezone.utc)
        monkeypatch.setattr("nest_registry.crud.package._now", lambda: later)
        result = publish_package(db, alice_credential, "foo", description="v2", repository="r2", unlisted=True)

        assert result.ok is True
        assert result.outcome == UPDATED

        package = reload_package(db, "foo")
        assert package.description == "v2"
        assert package.repository == "r2"
        assert package.unlisted is True
        assert package.updated_at.replace(tzinfo=None) == later.replace(tzinfo=None)
        # unchanged
        assert package.name == "foo"
        assert package.owner_name == "alice"
        assert package.created_at == created_at
        assert package.locked is True
        assert package.malicious is True

    def test_owner_updates_through_display_variant(self, db, alice_credential):
        publish_package(db, alice_credential, "foo")
        result = publish_package(db, alice_credential, "Foo", description="changed")

        assert result.outcome == UPDATED
        assert reload_package(db, "foo").description == "changed"
        assert crud.get_author(db, "alice").owned_packages == {"foo"}


class TestPublishReject:

    def test_non_owner_cannot_touch_package(self, db, alice_credential, bob_credential):
        publish_package(db, alice_credential, "foo", description="mine")
        before = reload_package(db, "foo")
        updated_at = before.updated_at

        result = publish_package(db, bob_credential, "foo", description="stolen", unlisted=True)

        assert result.ok is False
        assert result.error == "not_authorized"
        assert result.message == "Not Authorized"
        package = reload_package(db, "foo")
        assert package.description == "mine"
        assert package.unlisted is False
        assert package.updated_at == updated_at
        assert package.owner_name == "alice"
        assert crud.get_author(db, "bob").owned_packages == set()

    def test_stale_ownership_is_not_found(self, db, alice_credential, monkeypatch):
        """Test the owner-but-missing branch reported when the two reads disagree."""
        publish_package(db, alice_credential, "foo")
        monkeypatch.setattr(crud, "find_package_by_canonical_name", lambda db, key: None)

        result = publish_package(db, alice_credential, "foo", description="x")

        assert result.ok is False
        assert result.error == "not_found"

    def test_store_unavailable(self, tmp_path, alice_credential):
        """Test that an unreachable store is reported as unavailable, not as absent."""
        broken = build_engine(f"sqlite:///{tmp_path}/missing-dir/registry.db")
        session = sessionmaker(bind=broken)()
        try:
            result = publish_package(session, alice_credential, "foo")
        finally:
            session.close()

        assert result.ok is False
        assert result.error == "unavailable"


# ========== Concurrency ==========

class TestConcurrentCreate:

    def test_create_after_stale_existence_read_conflicts(self, db, alice_credential, bob_credential, monkeypatch):
        """Test that a create losing the race to a committed create reports a conflict."""
        other = TestingSessionLocal()
        try:
            assert publish_package(other, bob_credential, "race").outcome == CREATED
        finally:
            other.close()

        calls = []

        def stale_lookup(session, key):
            calls.append(key)
            return None

        monkeypatch.setattr(crud, "find_package_by_canonical_name", stale_lookup)
        result = publish_package(db, alice_credential, "race")
        monkeypatch.undo()

        assert calls == ["race"]
        assert result.ok is False
        assert result.error == "conflict"
        package = reload_package(db, "race")
        assert package.owner_name == "bob"
        assert len(crud.list_packages(db)) == 1
        assert crud.get_author(db, "alice").owned_packages == set()

    def test_two_concurrent_creates(self, db, alice_credential, bob_credential, monkeypatch):
        """Test that two creates deciding at the same time produce one package and one conflict."""
        original_lookup = crud.find_package_by_canonical_name
        original_create = crud.create_package
        both_decided = threading.Barrier(2, timeout=10)
        one_writer = threading.Lock()

        def lookup_then_wait(session, key):
            found = original_lookup(session, key)
            both_decided.wait()
            return found

        def create_one_at_a_time(session, owner, package):
            # SQLite allows a single writer; take turns so the loser sees the unique violation
            with one_writer:
                return original_create(session, owner, package)

        monkeypatch.setattr(crud, "find_package_by_canonical_name", lookup_then_wait)
        monkeypatch.setattr(crud, "create_package", create_one_at_a_time)

        results = {}

        def publish(author, credential):
            session = TestingSessionLocal()
            try:
                results[author] = publish_package(session, credential, "contested")
            finally:
                session.close()

        threads = [
            threading.Thread(target=publish, args=("alice", alice_credential)),
            threading.Thread(target=publish, args=("bob", bob_credential)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        monkeypatch.setattr(crud, "find_package_by_canonical_name", original_lookup)

        outcomes = sorted((r.ok, r.outcome, r.error) for r in results.values())
        assert outcomes == [(False, None, "conflict"), (True, CREATED, None)]

        winner = next(author for author, r in results.items() if r.ok)
        package = reload_package(db, "contested")
        assert package.owner_name == winner
        assert len(crud.list_packages(db)) == 1


# ========== End-to-End ==========

def test_publish_scenario(db):
    """Create alice, publish foo, republish as alice, then try as a stranger."""
    _, alice = create_author(db, "alice", "a")

    created = publish_package(db, alice, "foo", description="v1")
    assert created.outcome == CREATED
    assert reload_package(db, "foo").owner_name == "alice"
    assert crud.get_author(db, "alice").owned_packages == {"foo"}

    updated = publish_package(db, alice, "foo", description="v2")
    assert updated.outcome == UPDATED
    assert reload_package(db, "foo").description == "v2"

    _, mallory = create_author(db, "mallory", "m")
    rejected = publish_package(db, mallory, "foo", description="v3")
    assert rejected.ok is False
    assert rejected.error == "not_authorized"
    assert reload_package(db, "foo").description == "v2"
