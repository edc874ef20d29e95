"""
SQLAlchemy-backed session store.

Sessions and feedback live in two tables (see ``models``). Every write runs
in its own transaction and is rolled back on failure, so a save that raises
leaves nothing behind.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy import create_engine, func
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..errors import PersistenceError
from ..processing.models import FeedbackRecord, SessionRecord
from .abstract import SessionNotFoundError, SessionStore
from .models import Base, EnhancementSession, SessionFeedback

logger = logging.getLogger(__name__)

DEFAULT_URL = 'sqlite:///'


def sqlite_url(path: Union[str, Path]) -> str:
    """SQLite URL for a database file."""
    return f"sqlite:///{Path(path).expanduser().resolve()}"


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == 'sqlite' and url.database in (None, '', ':memory:')


class SqlSessionStore(SessionStore):
    """
    Session store on any SQLAlchemy-supported database.

    In-memory SQLite (the default) shares one connection through a
    StaticPool so every thread sees the same data.
    """

    def __init__(self, url: str = DEFAULT_URL, echo: bool = False):
        """
        Open the database and create the tables if needed.

        Args:
            url: SQLAlchemy database URL
            echo: Log emitted SQL

        Raises:
            PersistenceError: the database cannot be opened
        """
        self.url = url
        self._lock = threading.RLock()

        try:
            parsed = make_url(url)
            engine_kwargs = {'echo': echo}
            if parsed.get_backend_name() == 'sqlite':
                engine_kwargs['connect_args'] = {'check_same_thread': False}
                if _is_memory_sqlite(parsed):
                    engine_kwargs['poolclass'] = StaticPool
                else:
                    Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_engine(url, **engine_kwargs)
            Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, OSError, ValueError) as e:
            raise PersistenceError(f"Failed to open session store {url}: {e}") from e

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Session store ready: {parsed.render_as_string(hide_password=True)}")

    @contextmanager
    def _session(self):
        """Transaction scope: commit on success, roll back on any error."""
        with self._lock:
            session: Session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Session store error: {e}")
                raise PersistenceError(f"Session store error: {e}") from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def save_session(self, record: SessionRecord) -> str:
        session_id = record.session_id or uuid.uuid4().hex
        with self._session() as session:
            row = session.query(EnhancementSession).filter_by(session_id=session_id).one_or_none()
            if row is None:
                row = EnhancementSession(session_id=session_id)
                session.add(row)
            row.update_from(record)
        logger.debug(f"Saved session {session_id} for user {record.user_id}")
        return session_id

    def load_recent_sessions(self, user_id: str, limit: int = 50) -> List[SessionRecord]:
        with self._session() as session:
            rows = (
                session.query(EnhancementSession)
                .filter(EnhancementSession.user_id == user_id)
                .order_by(EnhancementSession.id.desc())
                .limit(max(0, limit))
                .all()
            )
            return [row.to_record() for row in rows]

    def save_feedback(self, record: FeedbackRecord) -> str:
        feedback_id = record.feedback_id or uuid.uuid4().hex
        with self._session() as session:
            exists = session.query(EnhancementSession.id).filter_by(session_id=record.session_id).first()
            if exists is None:
                raise SessionNotFoundError(f"Session not found: {record.session_id}")
            session.add(SessionFeedback.from_record(record, feedback_id))
        logger.debug(f"Saved feedback {feedback_id} for session {record.session_id}")
        return feedback_id

    def get_session(self, session_id: str) -> SessionRecord:
        with self._session() as session:
            row = session.query(EnhancementSession).filter_by(session_id=session_id).one_or_none()
            if row is None:
                raise SessionNotFoundError(f"Session not found: {session_id}")
            return row.to_record()

    def count_sessions(self, user_id: str) -> int:
        with self._session() as session:
            count: Optional[int] = (
                session.query(func.count(EnhancementSession.id))
                .filter(EnhancementSession.user_id == user_id)
                .scalar()
            )
            return count or 0

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
