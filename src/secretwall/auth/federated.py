# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Google OAuth2 authorization-code handshake.

``begin_handshake`` builds the provider redirect; ``complete_handshake``
exchanges the callback's code for an access token, reads the subject id from
the user-info endpoint and maps it onto a local user, creating one on first
login.
"""

from __future__ import annotations

import logging
import secrets
import urllib.parse
from typing import Optional, Tuple

import httpx
from starlette.concurrency import run_in_threadpool

from secretwall.config import Settings
from secretwall.errors import DuplicateFederatedId, HandshakeFailed
from secretwall.infra.user_repo import User, UserStore

logger = logging.getLogger(__name__)

SCOPE = "profile"


class GoogleHandshake:
    def __init__(
        self,
        store: UserStore,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.store = store
        self.client_id = settings.google_client_id
        self.client_secret = settings.google_client_secret
        self.callback_url = settings.google_callback_url
        self.authorize_url = settings.google_authorize_url
        self.token_url = settings.google_token_url
        self.userinfo_url = settings.google_userinfo_url
        self.timeout = settings.oauth_timeout
        # Tests swap in httpx.MockTransport.
        self._transport = transport

    def begin_handshake(self) -> Tuple[str, str]:
        """Return ``(redirect_url, state)``; the caller must remember ``state``."""
        state = secrets.token_urlsafe(24)
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "scope": SCOPE,
            "redirect_uri": self.callback_url,
            "state": state,
        }
        return f"{self.authorize_url}?{urllib.parse.urlencode(params)}", state

    async def complete_handshake(
        self,
        code: Optional[str],
        state: Optional[str],
        expected_state: Optional[str],
        error: Optional[str] = None,
    ) -> User:
        if error:
            raise HandshakeFailed(f"Provider returned error: {error}")
        if not code:
            raise HandshakeFailed("Missing authorization code")
        if not state or not expected_state or not secrets.compare_digest(state, expected_state):
            raise HandshakeFailed("OAuth state mismatch")

        subject_id, name = await self._fetch_subject(code)
        return await run_in_threadpool(self._find_or_create, subject_id, name)

    async def _fetch_subject(self, code: str) -> Tuple[str, Optional[str]]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                token_response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.callback_url,
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json()["access_token"]

                info_response = await client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                info_response.raise_for_status()
                profile = info_response.json()
        except httpx.TimeoutException as e:
            logger.warning("OAuth provider timed out", extra={"timeout": self.timeout})
            raise HandshakeFailed("Identity provider timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                "OAuth provider rejected request",
                extra={"status_code": e.response.status_code, "url": str(e.request.url)},
            )
            raise HandshakeFailed("Identity provider rejected the request") from e
        except httpx.HTTPError as e:
            logger.warning("OAuth transport error: %s", e)
            raise HandshakeFailed("Identity provider unreachable") from e
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Malformed OAuth provider response")
            raise HandshakeFailed("Malformed identity provider response") from e

        subject_id = str(profile.get("sub") or "").strip() if isinstance(profile, dict) else ""
        if not subject_id:
            raise HandshakeFailed("Provider profile has no subject id")
        name = profile.get("name") or None
        return subject_id, name

    def _find_or_create(self, subject_id: str, name: Optional[str]) -> User:
        user = self.store.find_by_federated_id(subject_id)
        if user:
            return user
        try:
            return self.store.create_federated(subject_id, display_name=name)
        except DuplicateFederatedId:
            # Lost a race with a concurrent first login: the winner's row exists now.
            logger.info("Concurrent federated signup detected, retrying lookup")
            user = self.store.find_by_federated_id(subject_id)
            if user is None:
                raise HandshakeFailed("Could not link federated account")
            return user
