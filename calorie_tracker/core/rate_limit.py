"""
Shared slowapi limiter: keyed by client IP.

Set ``RATE_LIMIT_ENABLED=false`` to turn every limit into a no-op (tests).
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from calorie_tracker.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
