# backend/src/middlewares/logging.py
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "anon"
        logger.info(f"[{client}] {request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
        return response
