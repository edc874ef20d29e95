"""
Session store construction from configuration.
"""

import logging
from typing import Any, Dict

from .abstract import InMemorySessionStore, SessionStore
from .sql_store import DEFAULT_URL, SqlSessionStore

logger = logging.getLogger(__name__)


def create_session_store(config: Dict[str, Any]) -> SessionStore:
    """
    Create a session store from the ``storage`` config section.

    Args:
        config: Storage configuration dictionary

    Returns:
        SessionStore instance

    Raises:
        ValueError: unknown backend
        PersistenceError: the database cannot be opened
    """
    backend = config.get('backend', 'memory')

    if backend == 'memory':
        return InMemorySessionStore()
    elif backend == 'sql':
        url = config.get('url') or DEFAULT_URL
        logger.debug(f"Opening SQL session store at {url}")
        return SqlSessionStore(url, echo=bool(config.get('echo', False)))
    else:
        raise ValueError(f"Unknown storage backend: {backend}")
