# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    # SQLite connections are shared with FastAPI's worker threads.
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create missing tables. Called on startup."""
    # Model modules register their tables on Base.metadata at import time.
    from secretwall.infra import user_repo  # noqa: F401
    from secretwall.auth import session_store  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("Database tables ready", extra={"tables": sorted(Base.metadata.tables)})
