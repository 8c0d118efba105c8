from __future__ import annotations

import base64
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional
from uuid import uuid4

from storereports.core.errors import NotFound
from storereports.engine.session import ReportSession


# ---- Helper functions ----
def _ts_utc_iso() -> str:
    now_utc = datetime.now(timezone.utc)
    return now_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_session_id() -> str:
    """URL-safe short id from 16 random bytes (~22 chars)."""
    return base64.urlsafe_b64encode(uuid4().bytes).rstrip(b"=").decode("ascii")


@dataclass
class SessionRecord:
    session_id: str
    session: ReportSession
    user_id: Optional[str]
    created_at: str
    updated_at: str


# ---- Store Implementation ----

class InMemorySessionStore:
    """
    Process-wide registry of active report sessions.

    Sessions are live objects, not copies: every read-modify step on a session
    goes through `edit()`, which holds the store lock so two requests can never
    mutate the same session at once.
    """

    def __init__(self) -> None:
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.RLock()  # re-entrant: edit() may call get()

    def create(self, session: ReportSession, user_id: Optional[str] = None) -> SessionRecord:
        with self._lock:
            session_id = new_session_id()
            while session_id in self._records:
                session_id = new_session_id()
            now = _ts_utc_iso()
            record = SessionRecord(session_id, session, user_id, created_at=now, updated_at=now)
            self._records[session_id] = record
            return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def require(self, session_id: str) -> SessionRecord:
        record = self.get(session_id)
        if record is None:
            raise NotFound(f"Session '{session_id}' not found.", code="UNKNOWN_SESSION")
        return record

    @contextmanager
    def edit(self, session_id: str) -> Iterator[SessionRecord]:
        with self._lock:
            record = self.require(session_id)
            yield record
            record.updated_at = _ts_utc_iso()

    def discard(self, session_id: str) -> bool:
        with self._lock:
            return self._records.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
