# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Server-side session storage backends.

``touch`` only refreshes a record that still exists, so a request resolving a
session cannot bring back one that a concurrent logout just deleted.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, Float, String, delete, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from secretwall.errors import StoreUnavailable
from secretwall.infra.db import Base


@dataclass(frozen=True)
class SessionRecord:
    user_id: str
    created_at: float
    last_seen: float

    def touched(self, now: float) -> "SessionRecord":
        return replace(self, last_seen=now)


class SessionStore(Protocol):
    def get(self, sid: str) -> Optional[SessionRecord]: ...

    def put(self, sid: str, record: SessionRecord) -> None: ...

    def touch(self, sid: str, now: float) -> bool: ...

    def delete(self, sid: str) -> None: ...

    def purge_expired(self, cutoff: float) -> int: ...


class InMemorySessionStore:
    def __init__(self) -> None:
        self._data: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def get(self, sid: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._data.get(sid)

    def put(self, sid: str, record: SessionRecord) -> None:
        with self._lock:
            self._data[sid] = record

    def touch(self, sid: str, now: float) -> bool:
        with self._lock:
            record = self._data.get(sid)
            if record is None:
                return False
            self._data[sid] = record.touched(now)
            return True

    def delete(self, sid: str) -> None:
        with self._lock:
            self._data.pop(sid, None)

    def purge_expired(self, cutoff: float) -> int:
        """Drop sessions last seen before ``cutoff``; return how many."""
        with self._lock:
            stale = [sid for sid, r in self._data.items() if r.last_seen < cutoff]
            for sid in stale:
                del self._data[sid]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class SessionRow(Base):
    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    user_id = Column(String(32), nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    last_seen = Column(Float, nullable=False, index=True)


class SqlSessionStore:
    """Sessions kept in the application database, shared across workers."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, sid: str) -> Optional[SessionRecord]:
        try:
            with self._session_factory() as db:
                row = db.get(SessionRow, sid)
                if row is None:
                    return None
                return SessionRecord(user_id=row.user_id, created_at=row.created_at, last_seen=row.last_seen)
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e

    def put(self, sid: str, record: SessionRecord) -> None:
        try:
            with self._session_factory.begin() as db:
                db.merge(
                    SessionRow(
                        sid=sid,
                        user_id=record.user_id,
                        created_at=record.created_at,
                        last_seen=record.last_seen,
                    )
                )
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e

    def touch(self, sid: str, now: float) -> bool:
        try:
            with self._session_factory.begin() as db:
                result = db.execute(update(SessionRow).where(SessionRow.sid == sid).values(last_seen=now))
                return result.rowcount > 0
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e

    def delete(self, sid: str) -> None:
        try:
            with self._session_factory.begin() as db:
                db.execute(delete(SessionRow).where(SessionRow.sid == sid))
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e

    def purge_expired(self, cutoff: float) -> int:
        try:
            with self._session_factory.begin() as db:
                result = db.execute(delete(SessionRow).where(SessionRow.last_seen < cutoff))
                return result.rowcount
        except OperationalError as e:
            raise StoreUnavailable(str(e.orig)) from e

    def __len__(self) -> int:
        with self._session_factory() as db:
            return db.query(SessionRow).count()
