"""
Logging setup for the Job Board service

Every record carries the environment and the current request id. Processor
client secrets and API keys are masked before a record is emitted.
"""
import logging
import re
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

access_logger = logging.getLogger("job_board.access")

# Stripe client secrets (pi_..._secret_...), Stripe/Paystack API keys
_SECRET_PATTERNS = [
    re.compile(r"\b(pi|seti)_[A-Za-z0-9]+_secret_[A-Za-z0-9]+\b"),
    re.compile(r"\b(sk|rk)_(live|test)_[A-Za-z0-9]+\b"),
]


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def redact(message: str) -> str:
    """Mask payment secrets in a log message"""
    for pattern in _SECRET_PATTERNS:
        message = pattern.sub("[REDACTED]", message)
    return message


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the duration of the request

    An incoming X-Request-ID is reused so ids line up with an upstream proxy;
    otherwise one is generated. The id is echoed on the response and one
    access line is logged per request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            access_logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)"
            )
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RedactingFilter(logging.Filter):
    """Rewrites record messages with payment secrets masked"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class StructuredFormatter(logging.Formatter):
    """timestamp [env] [request id] level logger: message"""

    DEFAULT_FORMAT = "%(asctime)s [%(env)s] [%(request_id)s] %(levelname)-8s %(name)s: %(message)s"

    def __init__(self, env: str = "dev"):
        super().__init__(fmt=self.DEFAULT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or "-"
        record.env = self.env
        return super().format(record)


def setup_logging(env: str = "dev", log_level: str = "INFO") -> logging.Logger:
    """
    Configure the root logger

    Args:
        env: Environment label stamped on each line (dev, test, staging, prod)
        log_level: Root level name; unknown names fall back to INFO
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter(env=env))
    handler.addFilter(RedactingFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Per-request lines are noise in tests
    access_logger.setLevel(logging.WARNING if env == "test" else level)

    # uvicorn.access duplicates the access line above
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    for noisy in ("sqlalchemy.engine", "httpx", "stripe", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger
