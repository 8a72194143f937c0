# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from secretwall.auth.credentials import CredentialVerifier
from secretwall.auth.federated import GoogleHandshake
from secretwall.auth.session import SessionManager
from secretwall.config import Settings
from secretwall.infra.user_repo import UserStore


@dataclass
class Services:
    """Collaborators wired by ``create_app`` and kept on ``app.state``."""

    settings: Settings
    engine: Engine
    store: UserStore
    credentials: CredentialVerifier
    sessions: SessionManager
    handshake: GoogleHandshake
