# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from secretwall.auth.passwords import hash_password, needs_rehash, verify_password
from secretwall.errors import InvalidCredentials, InvalidRegistration
from secretwall.infra.user_repo import User, UserStore

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Local username + password accounts."""

    def __init__(self, store: UserStore):
        self.store = store

    def register(self, username: str, password: str) -> User:
        """Create a local account. Raises DuplicateUsername if taken."""
        u = (username or "").strip()
        if not u:
            raise InvalidRegistration("Username is required")
        if not password:
            raise InvalidRegistration("Password is required")
        return self.store.create_local(u, hash_password(password))

    def verify(self, username: str, password: str) -> User:
        """Return the matching user or raise InvalidCredentials.

        Unknown users, federated-only users and wrong passwords fail the same
        way; only the log line tells them apart.
        """
        user = self.store.find_by_username(username)
        stored_hash = user.password_hash if user else None
        if not verify_password(stored_hash, password):
            if user is None:
                reason = "unknown user"
            elif stored_hash is None:
                reason = "no local password"
            else:
                reason = "password mismatch"
            logger.info("Login rejected", extra={"reason": reason})
            raise InvalidCredentials(reason)

        if needs_rehash(stored_hash):
            self.store.update_password_hash(user.id, hash_password(password))
            logger.info("Password hash upgraded", extra={"user_id": user.id})
        return user
