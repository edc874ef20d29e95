"""
Session and feedback persistence for PhotoTune.
"""

from .abstract import (
    SessionStore,
    SessionNotFoundError,
    InMemorySessionStore,
)
from .sql_store import SqlSessionStore, sqlite_url
from .factory import create_session_store

__all__ = [
    'SessionStore',
    'SessionNotFoundError',
    'InMemorySessionStore',
    'SqlSessionStore',
    'sqlite_url',
    'create_session_store',
]
