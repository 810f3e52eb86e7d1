"""Per-client throttling for the verification endpoint.

Anonymous callers get ``API_RATE_LIMIT`` requests per ``THROTTLE_TTL``
milliseconds, counted per remote address by a slowapi ``Limiter`` built in
``create_app``. Requests carrying an ``Authorization`` header are never
counted. Every counted response carries ``RateLimit-Limit``,
``RateLimit-Remaining`` and ``RateLimit-Reset`` (seconds until the window
resets); a rejected one is a 429 in the usual error envelope.
"""

from __future__ import annotations

import math
import time

from fastapi import Depends, HTTPException, Request, Response
from limits import RateLimitItemPerSecond
from slowapi import Limiter
from slowapi.util import get_remote_address

from aid_escrow.api.deps import get_app_settings
from aid_escrow.config import Settings  # noqa: TC001 - resolved by FastAPI
from aid_escrow.logging_config import get_logger

logger = get_logger(__name__)


def build_limiter(settings: Settings) -> Limiter:
    """One limiter per application; its storage holds the hit counters."""
    return Limiter(key_func=get_remote_address, storage_uri=settings.rate_limit_storage_uri)


def verification_limit(settings: Settings) -> RateLimitItemPerSecond:
    return RateLimitItemPerSecond(settings.api_rate_limit, settings.throttle_window_seconds)


async def throttle_verification(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Count the request against the caller's window, 429 once it is used up."""
    if request.headers.get("authorization"):
        return

    limiter: Limiter = request.app.state.limiter
    item = verification_limit(settings)
    key = get_remote_address(request)
    allowed = limiter.limiter.hit(item, "verification", key)
    reset_at, remaining = limiter.limiter.get_window_stats(item, "verification", key)
    headers = {
        "RateLimit-Limit": str(item.amount),
        "RateLimit-Remaining": str(max(0, remaining)),
        "RateLimit-Reset": str(max(0, math.ceil(reset_at - time.time()))),
    }

    if not allowed:
        logger.warning("rate_limit.exceeded", client=key, limit=str(item))
        raise HTTPException(
            status_code=429,
            detail="Too many verification requests",
            headers={**headers, "Retry-After": headers["RateLimit-Reset"]},
        )
    response.headers.update(headers)
