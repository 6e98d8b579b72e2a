"""
In-memory store for import sessions.
Entries expire after a TTL; expired sessions can be rebuilt from their job.
Single-process only.
"""
import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog

from config import settings
from models.import_job import ImportSession

logger = structlog.get_logger(__name__)

_cache: dict[str, tuple[datetime, ImportSession]] = {}


def new_session_id() -> str:
    return str(uuid.uuid4())


def store_session(session: ImportSession, ttl_minutes: Optional[int] = None) -> str:
    """Store (or refresh) a session under its session_id."""
    ttl = ttl_minutes if ttl_minutes is not None else settings.session_ttl_minutes
    expires_at = datetime.now() + timedelta(minutes=ttl)
    _cache[session.session_id] = (expires_at, session)
    _cleanup_expired()
    return session.session_id


def retrieve_session(session_id: str) -> Optional[ImportSession]:
    """Session by id. Returns None if expired/not found."""
    entry = _cache.get(session_id)
    if entry is None:
        return None
    expires_at, session = entry
    if datetime.now() > expires_at:
        del _cache[session_id]
        logger.info("import_session_expired", session_id=session_id)
        return None
    return session


def delete_session(session_id: str) -> None:
    _cache.pop(session_id, None)


def clear_sessions() -> None:
    """Drop every session."""
    _cache.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _cache.items() if now > exp]
    for k in expired:
        del _cache[k]
