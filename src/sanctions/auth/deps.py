"""FastAPI dependency for the acting user.

The wiki front-end signs a small session payload with the shared secret; this
service only verifies it. An absent, tampered or expired cookie means an
anonymous viewer, never an error.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from pydantic import ValidationError

from sanctions.config import Settings
from sanctions.models.actor import Actor

logger = logging.getLogger(__name__)

# Session cookie lives for 7 days (seconds).
SESSION_MAX_AGE = 7 * 24 * 60 * 60
SESSION_COOKIE_NAME = "sanctions_session"
SESSION_SALT = "sanctions-session"


def get_serializer(settings: Settings) -> URLSafeTimedSerializer:
    """Build a signer from the shared session secret."""
    return URLSafeTimedSerializer(settings.session_secret_key, salt=SESSION_SALT)


def sign_actor(actor: Actor, settings: Settings) -> str:
    """Produce a cookie value for *actor*. Used by the front-end and tests."""
    result: str = get_serializer(settings).dumps(actor.model_dump(mode="json"))
    return result


async def get_current_actor(request: Request) -> Actor | None:
    """Extract the viewer from the signed session cookie, or None."""
    raw = request.cookies.get(SESSION_COOKIE_NAME)
    if not raw:
        return None

    settings: Settings = request.app.state.settings
    try:
        data = get_serializer(settings).loads(raw, max_age=SESSION_MAX_AGE)
        return Actor.model_validate(data)
    except BadSignature:
        logger.debug("Invalid or expired session cookie, ignoring")
        return None
    except ValidationError:
        logger.debug("Malformed session payload, ignoring", exc_info=True)
        return None


OptionalActor = Annotated[Actor | None, Depends(get_current_actor)]
