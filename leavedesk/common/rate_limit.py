"""Rate limiting configuration using slowapi.

A module-level Limiter that routers import for per-endpoint limits and that
main.py wires into the FastAPI app.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from leavedesk.config import settings

# Individual routes can override with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)
