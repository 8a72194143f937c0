# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "y"}

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"


def _env(name: str, default: str = "") -> str:
    return os.getenv(f"SECRETWALL_{name}", default)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name, "")
    if not raw:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str = "sqlite:///./secretwall.db"
    session_backend: str = "memory"
    session_idle_timeout: int = 1800  # 30 min
    session_max_age: int = 28800  # 8 hours
    session_salt: str = "secretwall.session.v1"
    cookie_name: str = "secretwall_session"
    cookie_secure: bool = False
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:3000/auth/google/secrets"
    google_authorize_url: str = GOOGLE_AUTHORIZE_URL
    google_token_url: str = GOOGLE_TOKEN_URL
    google_userinfo_url: str = GOOGLE_USERINFO_URL
    oauth_timeout: float = 10.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False

    @property
    def state_cookie_name(self) -> str:
        return f"{self.cookie_name}_oauth_state"

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SECRET_KEY") or _env("SECRET_KEY")
        if not secret:
            raise RuntimeError("SECRET_KEY (or SECRETWALL_SECRET_KEY) is not set")

        backend = _env("SESSION_BACKEND", "memory").strip().lower()
        if backend not in {"memory", "database"}:
            raise RuntimeError(f"Unsupported SECRETWALL_SESSION_BACKEND: {backend!r}")

        return cls(
            secret_key=secret,
            database_url=_env("DATABASE_URL", cls.database_url),
            session_backend=backend,
            session_idle_timeout=int(_env("SESSION_IDLE_TIMEOUT", str(cls.session_idle_timeout))),
            session_max_age=int(_env("SESSION_MAX_AGE", str(cls.session_max_age))),
            session_salt=_env("SESSION_SALT", cls.session_salt),
            cookie_name=_env("COOKIE_NAME", cls.cookie_name),
            cookie_secure=_env_bool("COOKIE_SECURE", False),
            google_client_id=_env("GOOGLE_CLIENT_ID"),
            google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
            google_callback_url=_env("GOOGLE_CALLBACK_URL", cls.google_callback_url),
            oauth_timeout=float(_env("OAUTH_TIMEOUT", str(cls.oauth_timeout))),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            host=_env("HOST", cls.host),
            port=int(_env("PORT", str(cls.port))),
            reload=_env_bool("RELOAD", False),
        )
