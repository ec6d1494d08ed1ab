# readmaster/api/deps.py
"""
FastAPI dependencies: per-request DB session, the LLM chain, cron auth.
"""

import hmac
from typing import AsyncIterator, Optional

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from readmaster.chains.flashcard_chain import FlashcardChain
from readmaster.config import settings
from readmaster.errors import ApiError, ErrorCodes


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise ApiError(ErrorCodes.SERVICE_UNAVAILABLE, "Database is not available", 503)
    async with session_factory() as session:
        yield session


def get_flashcard_chain(request: Request) -> Optional[FlashcardChain]:
    return getattr(request.app.state, "flashcard_chain", None)


def verify_cron_auth(authorization: Optional[str], secret: Optional[str]) -> bool:
    """
    Check a "Bearer <secret>" header against the configured cron secret.

    With no secret configured every request is allowed (local development).
    """
    if not secret:
        return True
    if not authorization:
        return False
    return hmac.compare_digest(authorization.encode(), f"Bearer {secret}".encode())


async def require_cron_auth(request: Request, authorization: Optional[str] = Header(None)) -> None:
    secret = getattr(request.app.state, "cron_secret", settings.cron_secret)
    if not verify_cron_auth(authorization, secret):
        raise ApiError(ErrorCodes.UNAUTHORIZED, "Unauthorized", 401)
