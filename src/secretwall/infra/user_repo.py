# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""User record store.

A single ``users`` table. Uniqueness of ``username`` and ``federated_id`` is
enforced by the database; a losing concurrent insert surfaces as
:class:`DuplicateUsername` / :class:`DuplicateFederatedId`.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import Column, DateTime, String, Text, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from secretwall.errors import DuplicateFederatedId, DuplicateUsername, StoreUnavailable, UnknownUser
from secretwall.infra.db import Base

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    username = Column(String(255), unique=True, nullable=True, index=True)
    password_hash = Column(String(255), nullable=True)
    federated_id = Column(String(255), unique=True, nullable=True, index=True)
    display_name = Column(String(255), nullable=True)
    secret = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


@dataclass(frozen=True)
class User:
    id: str
    username: Optional[str]
    password_hash: Optional[str]
    federated_id: Optional[str]
    display_name: Optional[str]
    secret: Optional[str]
    created_at: datetime

    @property
    def is_federated(self) -> bool:
        return self.federated_id is not None

    @classmethod
    def from_row(cls, row: UserRow) -> "User":
        return cls(
            id=row.id,
            username=row.username,
            password_hash=row.password_hash,
            federated_id=row.federated_id,
            display_name=row.display_name,
            secret=row.secret,
            created_at=row.created_at,
        )


class UserStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except OperationalError as e:
            db.rollback()
            logger.error("User store unavailable", exc_info=True)
            raise StoreUnavailable(str(e.orig)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _insert(self, row: UserRow) -> User:
        with self._session() as db:
            db.add(row)
            db.flush()
            return User.from_row(row)

    def create_local(self, username: str, password_hash: Optional[str]) -> User:
        try:
            user = self._insert(UserRow(username=username, password_hash=password_hash))
        except IntegrityError as e:
            raise DuplicateUsername(username) from e
        logger.info("Local user created", extra={"user_id": user.id})
        return user

    def create_federated(self, federated_id: str, display_name: Optional[str] = None) -> User:
        try:
            user = self._insert(UserRow(federated_id=federated_id, display_name=display_name))
        except IntegrityError as e:
            raise DuplicateFederatedId(federated_id) from e
        logger.info("Federated user created", extra={"user_id": user.id})
        return user

    def get(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        with self._session() as db:
            row = db.get(UserRow, user_id)
            return User.from_row(row) if row else None

    def find_by_username(self, username: str) -> Optional[User]:
        u = (username or "").strip()
        if not u:
            return None
        with self._session() as db:
            row = db.execute(select(UserRow).where(UserRow.username == u)).scalar_one_or_none()
            return User.from_row(row) if row else None

    def find_by_federated_id(self, federated_id: str) -> Optional[User]:
        if not federated_id:
            return None
        with self._session() as db:
            row = db.execute(
                select(UserRow).where(UserRow.federated_id == federated_id)
            ).scalar_one_or_none()
            return User.from_row(row) if row else None

    def set_secret(self, user_id: str, secret: str) -> User:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                raise UnknownUser(user_id)
            row.secret = secret
            db.flush()
            return User.from_row(row)

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                raise UnknownUser(user_id)
            row.password_hash = password_hash

    def list_with_secrets(self) -> List[User]:
        with self._session() as db:
            rows = db.execute(
                select(UserRow).where(UserRow.secret.is_not(None)).order_by(UserRow.created_at)
            ).scalars()
            return [User.from_row(r) for r in rows]
