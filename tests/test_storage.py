"""
Tests for session stores.
"""

import threading
from unittest.mock import patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from conftest import make_session
from phototune.errors import PersistenceError
from phototune.processing.models import FeedbackRecord, FeedbackType, SpecificFeedback
from phototune.storage import (
    InMemorySessionStore, SessionNotFoundError, SqlSessionStore, create_session_store, sqlite_url,
)


@pytest.fixture(params=["memory", "sql"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionStore()
    return SqlSessionStore(sqlite_url(tmp_path / "sessions.db"))


class TestSessionStoreContract:
    """Behavior shared by every backend."""

    def test_save_and_get(self, any_store):
        session_id = any_store.save_session(make_session(strength=0.7, image_type="food"))
        loaded = any_store.get_session(session_id)
        assert loaded.session_id == session_id
        assert loaded.image_type == "food"
        assert loaded.config.strength == 0.7

    def test_explicit_session_id_kept(self, any_store):
        session = make_session()
        session.session_id = "fixed-id"
        assert any_store.save_session(session) == "fixed-id"

    def test_recent_sessions_newest_first(self, any_store):
        ids = [any_store.save_session(make_session(strength=s)) for s in (0.1, 0.2, 0.3)]
        recent = any_store.load_recent_sessions("user-1", limit=2)
        assert [s.session_id for s in recent] == [ids[2], ids[1]]

    def test_sessions_scoped_to_user(self, any_store):
        any_store.save_session(make_session(user_id="alice"))
        any_store.save_session(make_session(user_id="bob"))
        assert [s.user_id for s in any_store.load_recent_sessions("alice")] == ["alice"]
        assert any_store.count_sessions("bob") == 1
        assert any_store.load_recent_sessions("carol") == []

    def test_feedback_attached_in_order(self, any_store):
        session_id = any_store.save_session(make_session(rating=2))
        any_store.save_feedback(FeedbackRecord(session_id=session_id, user_id="user-1", rating=3))
        any_store.save_feedback(FeedbackRecord(
            session_id=session_id, user_id="user-1", feedback_type=FeedbackType.LIKE, rating=5,
            specific_feedback=SpecificFeedback(too_weak=True, improved_aspects=("clahe",)),
        ))

        session = any_store.load_recent_sessions("user-1")[0]

        assert [f.rating for f in session.feedback] == [3, 5]
        assert session.feedback[1].specific_feedback.improved_aspects == ("clahe",)
        assert session.effective_rating(3) == 5

    def test_feedback_for_unknown_session(self, any_store):
        with pytest.raises(SessionNotFoundError):
            any_store.save_feedback(FeedbackRecord(session_id="nope", user_id="user-1"))
        with pytest.raises(PersistenceError):
            any_store.get_session("nope")

    def test_overwrite_keeps_one_session(self, any_store):
        session = make_session(strength=0.3)
        session.session_id = "same"
        any_store.save_session(session)
        session.rating = 4
        any_store.save_session(session)

        assert any_store.count_sessions("user-1") == 1
        assert any_store.get_session("same").rating == 4

    def test_concurrent_saves(self, any_store):
        def save_many():
            for _ in range(10):
                any_store.save_session(make_session())

        threads = [threading.Thread(target=save_many) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert any_store.count_sessions("user-1") == 40


class TestSqlStore:

    def test_survives_reopen(self, tmp_path):
        url = sqlite_url(tmp_path / "nested" / "sessions.db")
        first = SqlSessionStore(url)
        older = first.save_session(make_session(strength=0.2))
        newer = first.save_session(make_session(strength=0.8))
        first.save_feedback(FeedbackRecord(session_id=older, user_id="user-1", rating=4))
        first.close()

        reopened = SqlSessionStore(url)
        recent = reopened.load_recent_sessions("user-1")

        assert [s.session_id for s in recent] == [newer, older]
        assert recent[1].feedback[0].rating == 4
        assert recent[0].config.strength == 0.8

        latest = reopened.save_session(make_session())
        assert reopened.load_recent_sessions("user-1", limit=1)[0].session_id == latest

    def test_tables_created(self):
        store = SqlSessionStore()
        assert {'sessions', 'feedback'} <= set(inspect(store.engine).get_table_names())

    def test_in_memory_default_shared_across_threads(self):
        store = SqlSessionStore()
        session_id = store.save_session(make_session())
        found = []
        reader = threading.Thread(target=lambda: found.append(store.get_session(session_id)))
        reader.start()
        reader.join()
        assert found[0].session_id == session_id

    def test_failed_feedback_commit_is_rolled_back(self):
        store = SqlSessionStore()
        session_id = store.save_session(make_session(rating=3))

        with patch.object(Session, 'commit', side_effect=SQLAlchemyError("disk I/O error")):
            with pytest.raises(PersistenceError):
                store.save_feedback(FeedbackRecord(
                    session_id=session_id, user_id="user-1", rating=1,
                    specific_feedback=SpecificFeedback(too_strong=True),
                ))

        session = store.load_recent_sessions("user-1")[0]
        assert session.feedback == ()
        assert session.effective_rating(3) == 3

    def test_failed_session_commit_is_rolled_back(self):
        store = SqlSessionStore()
        with patch.object(Session, 'commit', side_effect=SQLAlchemyError("database is locked")):
            with pytest.raises(PersistenceError):
                store.save_session(make_session())
        assert store.count_sessions("user-1") == 0

    def test_unreachable_database(self):
        with pytest.raises(PersistenceError):
            SqlSessionStore("nosuchdialect://localhost/db")


class TestCreateSessionStore:

    def test_memory_backend(self):
        assert isinstance(create_session_store({'backend': 'memory'}), InMemorySessionStore)

    def test_sql_backend(self, tmp_path):
        url = sqlite_url(tmp_path / "s.db")
        store = create_session_store({'backend': 'sql', 'url': url})
        assert isinstance(store, SqlSessionStore)
        assert store.url == url

    def test_sql_backend_defaults_to_in_memory(self):
        store = create_session_store({'backend': 'sql', 'url': None})
        assert isinstance(store, SqlSessionStore)
        assert store.count_sessions("user-1") == 0

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_session_store({'backend': 'postgres'})
