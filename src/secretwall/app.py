# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from secretwall.auth.credentials import CredentialVerifier
from secretwall.auth.federated import GoogleHandshake
from secretwall.auth.session import SessionManager
from secretwall.auth.session_store import InMemorySessionStore, SessionStore, SqlSessionStore
from secretwall.config import Settings
from secretwall.errors import (
    DuplicateUsername,
    HandshakeFailed,
    InvalidCredentials,
    InvalidRegistration,
    StoreUnavailable,
    Unauthorized,
    UnknownUser,
)
from secretwall.infra.db import create_tables, make_engine, make_session_factory
from secretwall.infra.user_repo import User, UserStore
from secretwall.logging_setup import setup_logging
from secretwall.permissions import CurrentUser, get_services, load_user_from_request, require_user
from secretwall.services import Services

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
STATE_COOKIE_MAX_AGE = 600

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the current user."""
    base_ctx = {"current_user": getattr(request.state, "user", None)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _start_session(request: Request, user: User, url: str = "/secrets") -> RedirectResponse:
    """Replace any existing session with a fresh one for ``user``."""
    services = get_services(request)
    settings = services.settings
    previous = request.cookies.get(settings.cookie_name)
    if previous:
        services.sessions.destroy(previous)
    token = services.sessions.establish(user)
    resp = _redirect(url)
    resp.set_cookie(
        settings.cookie_name,
        token,
        max_age=settings.session_max_age,
        **settings.cookie_settings(),
    )
    return resp


# ------------------ Pages ------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    return _render(request, "home.html")


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/secrets"):
    return _render(request, "login.html", {"next": next})


@router.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    return _render(request, "register.html")


@router.get("/secrets", response_class=HTMLResponse)
def secrets_page(request: Request):
    users = get_services(request).store.list_with_secrets()
    # Anonymised: only the secret text reaches the template.
    return _render(request, "secrets.html", {"secrets": [u.secret for u in users]})


@router.get("/submit", response_class=HTMLResponse)
def submit_get(request: Request, user: CurrentUser = Depends(require_user)):
    return _render(request, "submit.html")


@router.get("/health")
def health():
    return {"status": "ok"}


# ------------------ Local accounts ------------------


@router.post("/register")
def register_post(request: Request, username: str = Form(""), password: str = Form("")):
    try:
        user = get_services(request).credentials.register(username, password)
    except (DuplicateUsername, InvalidRegistration) as e:
        logger.info("Registration rejected: %s", e.__class__.__name__)
        return _redirect("/register")
    return _start_session(request, user)


@router.post("/login")
def login_post(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    next: str = Form("/secrets"),
):
    try:
        user = get_services(request).credentials.verify(username, password)
    except InvalidCredentials:
        return _redirect("/login")
    # Only local paths; anything else could bounce the user off-site.
    target = next if next.startswith("/") and not next.startswith("//") else "/secrets"
    return _start_session(request, user, target)


@router.post("/submit")
def submit_post(request: Request, secret: str = Form(""), user: CurrentUser = Depends(require_user)):
    services = get_services(request)
    if not secret.strip():
        return _redirect("/submit")
    try:
        services.store.set_secret(user.id, secret)
    except UnknownUser:
        logger.warning("Session user no longer exists", extra={"user_id": user.id})
        return _logout_response(request, "/login")
    logger.info("Secret submitted", extra={"user_id": user.id})
    return _redirect("/secrets")


def _logout_response(request: Request, url: str) -> RedirectResponse:
    services = get_services(request)
    settings = services.settings
    token = request.cookies.get(settings.cookie_name)
    if token:
        services.sessions.destroy(token)
    resp = _redirect(url)
    resp.delete_cookie(settings.cookie_name)
    return resp


@router.get("/logout")
def logout(request: Request):
    return _logout_response(request, "/")


# ------------------ Google OAuth2 ------------------


@router.get("/auth/google")
def google_begin(request: Request):
    services = get_services(request)
    url, state = services.handshake.begin_handshake()
    resp = _redirect(url)
    resp.set_cookie(
        services.settings.state_cookie_name,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        **services.settings.cookie_settings(),
    )
    return resp


@router.get("/auth/google/secrets")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
):
    services = get_services(request)
    state_cookie = services.settings.state_cookie_name
    try:
        user = await services.handshake.complete_handshake(
            code, state, request.cookies.get(state_cookie), error=error
        )
    except HandshakeFailed as e:
        logger.warning("Google login failed: %s", e)
        resp = _redirect("/login")
        resp.delete_cookie(state_cookie)
        return resp
    resp = await run_in_threadpool(_start_session, request, user)
    resp.delete_cookie(state_cookie)
    return resp


# ------------------ Error mapping ------------------


async def _unauthorized_handler(request: Request, exc: Unauthorized):
    return _redirect("/login?" + urllib.parse.urlencode({"next": exc.next_url}))


async def _store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Request failed: user store unavailable", extra={"path": request.url.path})
    return _render(request, "error.html", {"message": "Service temporarily unavailable."}, status_code=503)


def _build_session_store(settings: Settings, session_factory) -> SessionStore:
    if settings.session_backend == "database":
        return SqlSessionStore(session_factory)
    return InMemorySessionStore()


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_store: Optional[SessionStore] = None,
    oauth_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    engine = make_engine(settings.database_url)
    create_tables(engine)
    session_factory = make_session_factory(engine)
    store = UserStore(session_factory)

    services = Services(
        settings=settings,
        engine=engine,
        store=store,
        credentials=CredentialVerifier(store),
        sessions=SessionManager(
            session_store or _build_session_store(settings, session_factory),
            secret_key=settings.secret_key,
            salt=settings.session_salt,
            idle_timeout=settings.session_idle_timeout,
            max_age=settings.session_max_age,
        ),
        handshake=GoogleHandshake(store, settings, transport=oauth_transport),
    )

    if not settings.google_client_id:
        logger.warning("SECRETWALL_GOOGLE_CLIENT_ID is not set; Google login will fail")
    logger.info(
        "secretwall configured",
        extra={"session_backend": settings.session_backend, "callback_url": settings.google_callback_url},
    )

    app = FastAPI(title="secretwall")
    app.state.services = services

    static_dir = BASE_DIR / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    app.add_exception_handler(Unauthorized, _unauthorized_handler)
    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        try:
            request.state.user = await run_in_threadpool(load_user_from_request, request)
            request.state.user_resolved = True
        except StoreUnavailable as exc:
            request.state.user = None
            return await _store_unavailable_handler(request, exc)
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        return response

    app.include_router(router)
    return app
