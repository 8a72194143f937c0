# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- Local registration and credential checks against the user store
- Google OAuth2 handshake (httpx)
- Server-side sessions behind signed cookie tokens (itsdangerous)
"""
