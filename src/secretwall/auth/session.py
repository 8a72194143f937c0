# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
import time
from typing import Callable, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from secretwall.auth.session_store import SessionRecord, SessionStore
from secretwall.infra.user_repo import User

logger = logging.getLogger(__name__)


class SessionManager:
    """Issues, resolves and destroys server-side sessions.

    The cookie carries only a signed, random session id; the identity lives
    in the injected :class:`SessionStore`. A session ends on logout or when it
    has been idle for longer than ``idle_timeout`` seconds. ``max_age`` bounds
    the token's lifetime regardless of activity.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        secret_key: str,
        salt: str = "secretwall.session.v1",
        idle_timeout: int = 1800,
        max_age: int = 28800,
        purge_interval: int = 300,
        clock: Callable[[], float] = time.time,
    ):
        if not secret_key:
            raise RuntimeError("SessionManager needs a secret key")
        self.store = store
        self.idle_timeout = idle_timeout
        self.max_age = max_age
        self.purge_interval = purge_interval
        self._clock = clock
        self._last_purge: Optional[float] = None
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def _sid_from_token(self, token: str) -> Optional[str]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        sid = str((data or {}).get("sid") or "").strip() if isinstance(data, dict) else ""
        return sid or None

    def _maybe_purge(self, now: float) -> None:
        if self._last_purge is not None and now - self._last_purge < self.purge_interval:
            return
        self._last_purge = now
        purged = self.store.purge_expired(now - self.idle_timeout)
        if purged:
            logger.info("Purged idle sessions", extra={"count": purged})

    def establish(self, user: User) -> str:
        sid = secrets.token_urlsafe(32)
        now = self._clock()
        self._maybe_purge(now)
        self.store.put(sid, SessionRecord(user_id=user.id, created_at=now, last_seen=now))
        logger.info("Session established", extra={"user_id": user.id})
        return self._serializer.dumps({"sid": sid})

    def resolve(self, token: str) -> Optional[str]:
        """Return the user id bound to ``token``, or None for anonymous."""
        sid = self._sid_from_token(token)
        if not sid:
            return None
        record = self.store.get(sid)
        if record is None:
            return None
        now = self._clock()
        if now - record.last_seen > self.idle_timeout:
            self.store.delete(sid)
            logger.info("Session expired after inactivity", extra={"user_id": record.user_id})
            return None
        # Fails if the session was destroyed since the read above.
        if not self.store.touch(sid, now):
            return None
        return record.user_id

    def destroy(self, token: str) -> None:
        sid = self._sid_from_token(token)
        if not sid:
            return
        self.store.delete(sid)
        logger.info("Session destroyed")
