# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_PH = PasswordHasher()

# Verified against when there is no stored hash, so a missing user costs
# about as much as a wrong password.
_DUMMY_HASH = _PH.hash("secretwall-dummy-password")


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def verify_password(hash_value: str | None, plain: str) -> bool:
    if not plain:
        return False
    if not hash_value:
        try:
            _PH.verify(_DUMMY_HASH, plain)
        except VerifyMismatchError:
            pass
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(hash_value: str) -> bool:
    return _PH.check_needs_rehash(hash_value)
