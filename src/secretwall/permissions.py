# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from secretwall.errors import Unauthorized
from secretwall.services import Services


@dataclass(frozen=True)
class CurrentUser:
    id: str
    username: Optional[str]
    display_name: Optional[str]

    @property
    def label(self) -> str:
        return self.username or self.display_name or "Google user"


def get_services(request: Request) -> Services:
    return request.app.state.services


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    services = get_services(request)
    token = request.cookies.get(services.settings.cookie_name, "")
    user_id = services.sessions.resolve(token)
    if not user_id:
        return None
    u = services.store.get(user_id)
    if not u:
        return None
    return CurrentUser(id=u.id, username=u.username, display_name=u.display_name)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    # The auth middleware already resolved this request, anonymous included.
    if getattr(request.state, "user_resolved", False):
        return request.state.user
    u = getattr(request.state, "user", None)
    if u is not None:
        return u
    return load_user_from_request(request)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    raise Unauthorized(next_url)
