# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain errors.

Every error raised by the store, the credential verifier, the federated
handshake or the permission layer derives from :class:`SecretWallError`, so
route handlers can recover all of them at the HTTP boundary.
"""

from __future__ import annotations


class SecretWallError(Exception):
    """Base class for application errors."""


class DuplicateUsername(SecretWallError):
    def __init__(self, username: str):
        super().__init__(f"Username already registered: {username!r}")
        self.username = username


class DuplicateFederatedId(SecretWallError):
    def __init__(self, federated_id: str):
        super().__init__("Federated subject already linked to a user")
        self.federated_id = federated_id


class InvalidCredentials(SecretWallError):
    """Unknown user or wrong password. Deliberately indistinguishable."""

    def __init__(self, reason: str = ""):
        super().__init__("Invalid username or password")
        # Server-side detail only; never rendered.
        self.reason = reason


class InvalidRegistration(SecretWallError):
    pass


class HandshakeFailed(SecretWallError):
    pass


class Unauthorized(SecretWallError):
    def __init__(self, next_url: str = "/"):
        super().__init__("Authentication required")
        self.next_url = next_url


class StoreUnavailable(SecretWallError):
    pass


class UnknownUser(SecretWallError):
    def __init__(self, user_id: str):
        super().__init__(f"No user with id {user_id!r}")
        self.user_id = user_id
