import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request

logger = logging.getLogger("app.http")

MAX_USER_AGENT_LENGTH = 200


def clean_user_agent(value: str) -> str:
    """Truncate and strip line breaks to prevent log injection."""
    return value[:MAX_USER_AGENT_LENGTH].replace("\r", "").replace("\n", "")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else None
        user_agent = clean_user_agent(request.headers.get("user-agent", ""))
        started = time.perf_counter()

        logger.info(f"Incoming request: {method} {path} ip={client_ip} ua={user_agent!r}")

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"Error: {method} {path} error={e} time={elapsed_ms:.0f}ms")
            raise

        principal = getattr(request.state, "principal", None)
        user_id = getattr(principal, "id", None) or "anonymous"
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Response: {method} {path} status={response.status_code} "
            f"time={elapsed_ms:.0f}ms user={user_id}"
        )
        return response
