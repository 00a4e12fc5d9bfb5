"""Session identity for the score API.

Login and registration live in a separate auth component that writes the
authenticated user's id into a signed session cookie. This module only reads
that identity back:

- `SESSION_SECRET`: signing secret shared with the auth component.
- `SESSION_COOKIE`: cookie name. Default: `mirage.sid`.
- `SESSION_MAX_AGE_SECONDS`: cookie lifetime. Default: 24 hours.

Endpoints receive the identity through the `session_user_id` dependency,
which yields `None` for anonymous requests.
"""
from __future__ import annotations

import logging

from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request

from mirage.config.runtime import RuntimeSettings

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def configure_sessions(app, settings: RuntimeSettings) -> None:
    """Add signed-cookie session support to a FastAPI app."""
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=False,
    )
    logger.info(
        "session identity enabled (cookie=%s, max_age=%ds)",
        settings.session_cookie, settings.session_max_age_seconds,
    )


def session_user_id(request: Request) -> int | None:
    if "session" not in request.scope:
        return None
    raw = request.session.get(SESSION_USER_KEY)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("discarding malformed session user id %r", raw)
        return None
