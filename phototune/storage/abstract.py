"""
Session storage abstraction for PhotoTune.

Enhancement sessions and user feedback are persisted through the
SessionStore contract. This module holds the contract and an in-memory
store for tests and single-process use; the SQLAlchemy store lives in
``sql_store``.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List
import uuid
import logging
import threading

from ..errors import PersistenceError
from ..processing.models import FeedbackRecord, SessionRecord

logger = logging.getLogger(__name__)


class SessionNotFoundError(PersistenceError):
    """Raised when a session id does not exist in the store."""
    pass


class SessionStore(ABC):
    """Abstract base class for session/feedback persistence."""

    @abstractmethod
    def save_session(self, record: SessionRecord) -> str:
        """Persist a session and return its id."""
        pass

    @abstractmethod
    def load_recent_sessions(self, user_id: str, limit: int = 50) -> List[SessionRecord]:
        """Load a user's most recent sessions, newest first, feedback attached."""
        pass

    @abstractmethod
    def save_feedback(self, record: FeedbackRecord) -> str:
        """Persist feedback for an existing session and return its id."""
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> SessionRecord:
        """Load one session by id, raising SessionNotFoundError if missing."""
        pass

    def count_sessions(self, user_id: str) -> int:
        """Number of sessions stored for a user."""
        return len(self.load_recent_sessions(user_id, limit=2 ** 31))


class InMemorySessionStore(SessionStore):
    """Thread-safe in-process session store."""

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._feedback: Dict[str, List[Dict[str, Any]]] = {}
        self._sequence = 0

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def save_session(self, record: SessionRecord) -> str:
        with self._lock:
            session_id = record.session_id or uuid.uuid4().hex
            data = record.to_dict()
            data['session_id'] = session_id
            data['_sequence'] = self._next_sequence()
            self._sessions[session_id] = data
        logger.debug(f"Saved session {session_id} for user {record.user_id}")
        return session_id

    def load_recent_sessions(self, user_id: str, limit: int = 50) -> List[SessionRecord]:
        with self._lock:
            rows = [row for row in self._sessions.values() if row['user_id'] == user_id]
            rows.sort(key=lambda row: row.get('_sequence', 0), reverse=True)
            return [self._to_record(row) for row in rows[:max(0, limit)]]

    def save_feedback(self, record: FeedbackRecord) -> str:
        with self._lock:
            if record.session_id not in self._sessions:
                raise SessionNotFoundError(f"Session not found: {record.session_id}")
            feedback_id = record.feedback_id or uuid.uuid4().hex
            data = record.to_dict()
            data['feedback_id'] = feedback_id
            data['_sequence'] = self._next_sequence()
            self._feedback.setdefault(record.session_id, []).append(data)
        logger.debug(f"Saved feedback {feedback_id} for session {record.session_id}")
        return feedback_id

    def get_session(self, session_id: str) -> SessionRecord:
        with self._lock:
            row = self._sessions.get(session_id)
            if row is None:
                raise SessionNotFoundError(f"Session not found: {session_id}")
            return self._to_record(row)

    def count_sessions(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for row in self._sessions.values() if row['user_id'] == user_id)

    def _to_record(self, row: Dict[str, Any]) -> SessionRecord:
        feedback = sorted(self._feedback.get(row['session_id'], []),
                          key=lambda item: item.get('_sequence', 0))
        record = SessionRecord.from_dict(row)
        return record.with_feedback(FeedbackRecord.from_dict(item) for item in feedback)
