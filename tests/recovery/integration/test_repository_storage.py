"""SessionStore backed by the Protean repository of the recovery domain."""

from datetime import timedelta

import pytest
from protean import current_domain
from recovery.session.session import CartSession
from recovery.session.store import RecoveryOutcome, SessionStore
from recovery.storage import build_storage
from recovery.storage.memory import InMemorySessionStorage
from recovery.storage.repository import RepositorySessionStorage


@pytest.fixture()
def storage():
    storage = RepositorySessionStorage(page_size=2)
    storage.clear()
    yield storage
    storage.clear()


@pytest.fixture()
def repo_store(storage, clock, policy, emitter):
    return SessionStore(storage=storage, clock=clock, policy=policy, emitter=emitter)


class TestRepositoryStorage:
    def test_track_persists_session(self, repo_store, widget):
        snapshot = repo_store.track("repo@b.com", "A", [widget])

        persisted = current_domain.repository_for(CartSession).get(snapshot.id)
        assert persisted.email == "repo@b.com"
        assert persisted.status == "Active"
        assert persisted.total_value == 2000

    def test_lifecycle_round_trip(self, repo_store, clock, widget):
        repo_store.track("repo@b.com", "A", [widget])
        clock.advance(hours=2)
        repo_store.sweep()

        result = repo_store.mark_recovered("repo@b.com")

        assert result.outcome == RecoveryOutcome.RECOVERED
        assert result.session.recovered_from == "Abandoned"
        assert repo_store.get("repo@b.com").status == "Recovered"

    def test_get_missing_returns_none(self, storage):
        assert storage.get("does-not-exist") is None

    def test_all_pages_through_results(self, repo_store, widget):
        for index in range(5):
            repo_store.track(f"page{index}@b.com", "A", [widget])

        assert len(repo_store.all()) == 5

    def test_new_session_after_terminal(self, repo_store, clock, widget, gadget):
        repo_store.track("repo@b.com", "A", [widget])
        repo_store.mark_recovered("repo@b.com")
        clock.advance(minutes=1)
        repo_store.track("repo@b.com", "A", [gadget])

        assert [session.status for session in repo_store.history("repo@b.com")] == ["Recovered", "Active"]

    def test_purge_and_delete(self, repo_store, clock, widget):
        repo_store.track("repo@b.com", "A", [widget])
        clock.advance(timedelta(days=31))
        repo_store.sweep()

        assert repo_store.purge_expired() == 1
        assert repo_store.all() == []

    def test_cleanup_old_sessions(self, repo_store, clock, widget):
        for index in range(3):
            repo_store.track(f"old{index}@b.com", "A", [widget])
            repo_store.mark_recovered(f"old{index}@b.com")
        clock.advance(timedelta(days=400))

        assert repo_store.cleanup_old_sessions() == 3
        assert repo_store.all() == []


class TestBuildStorage:
    def test_repository_is_default(self, monkeypatch):
        monkeypatch.delenv("CART_SESSION_STORAGE", raising=False)
        assert isinstance(build_storage(), RepositorySessionStorage)

    def test_memory_from_env(self, monkeypatch):
        monkeypatch.setenv("CART_SESSION_STORAGE", "memory")
        assert isinstance(build_storage(), InMemorySessionStorage)

    def test_store_persists_through_the_repository_by_default(self, monkeypatch, clock, widget):
        monkeypatch.delenv("CART_SESSION_STORAGE", raising=False)
        store = SessionStore(clock=clock)

        snapshot = store.track("default@b.com", "A", [widget])

        assert isinstance(store.storage, RepositorySessionStorage)
        assert current_domain.repository_for(CartSession).get(snapshot.id).email == "default@b.com"

    def test_unknown_adapter(self):
        with pytest.raises(ValueError):
            build_storage("redis")
