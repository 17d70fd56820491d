"""
Shared slowapi limiter.
Routes decorate with ``@limiter.limit(...)``; main.py installs it on the app.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from airwaves.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
