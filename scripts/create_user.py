#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from secretwall.auth.credentials import CredentialVerifier
from secretwall.config import Settings
from secretwall.errors import DuplicateUsername, InvalidRegistration
from secretwall.infra.db import create_tables, make_engine, make_session_factory
from secretwall.infra.user_repo import UserStore


def main() -> None:
    settings = Settings.from_env()
    engine = make_engine(settings.database_url)
    create_tables(engine)
    verifier = CredentialVerifier(UserStore(make_session_factory(engine)))

    username = input("Username: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = verifier.register(username, pw1)
    except (DuplicateUsername, InvalidRegistration) as e:
        raise SystemExit(str(e))
    print(f"OK -> {user.username} ({user.id}) in {settings.database_url}")


if __name__ == "__main__":
    main()
