"""Per-request access log with the level raised for slow or failing requests."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000
SLOW_PROBE_THRESHOLD_MS = 100

HEALTH_PATHS = ("/health", "/health/ready")

# A stream's response returns once headers are ready; the subscription itself
# may stay open for hours and is not latency.
STREAM_PATH_SUFFIX = "/stream"


def classify_request(path: str, status_code: int, latency_ms: float, failed: bool) -> tuple[int, str] | None:
    """Pick the log level and prefix for one finished request.

    Returns:
        tuple[int, str] | None: ``(level, prefix)``, or None when the request
            is a fast health probe and is not worth a line.
    """
    if path in HEALTH_PATHS:
        return (logging.DEBUG, "") if latency_ms > SLOW_PROBE_THRESHOLD_MS else None
    if failed or status_code >= 500:
        return logging.ERROR, ""
    if path.endswith(STREAM_PATH_SUFFIX) and status_code < 400:
        return logging.INFO, "STREAM OPENED: "
    if latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
        return logging.ERROR, "VERY SLOW REQUEST: "
    if latency_ms > SLOW_REQUEST_THRESHOLD_MS:
        return logging.WARNING, "SLOW REQUEST: "
    if status_code >= 400:
        return logging.WARNING, ""
    return logging.INFO, ""


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log ``METHOD path - status - ms`` once the response is ready.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler, unchanged.
    """
    started = time.perf_counter()
    response: Response | None = None
    failed = False

    try:
        response = await call_next(request)
        return response
    except Exception:
        failed = True
        raise
    finally:
        latency_ms = (time.perf_counter() - started) * 1000
        status_code = response.status_code if response is not None else 500
        verdict = classify_request(request.url.path, status_code, latency_ms, failed)
        if verdict is not None:
            level, prefix = verdict
            logger.log(
                level,
                "%s%s %s - %d - %.2fms",
                prefix,
                request.method,
                request.url.path,
                status_code,
                latency_ms,
            )
