"""Logging middleware for the EC2 RAID server."""

import time
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger

SENSITIVE_KEYWORDS = ("password", "token", "key", "secret", "credential", "auth", "profile")


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field may carry credentials and must not be logged."""
    field_lower = field_name.lower()
    return any(sensitive in field_lower for sensitive in SENSITIVE_KEYWORDS)


class LoggingMiddleware(Middleware):
    """Logs each MCP message with sanitized parameters and its duration."""

    def __init__(self, include_payloads: bool = True, max_payload_length: int = 1000):
        self.logger = get_middleware_logger()
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.time()

        log_data: dict[str, Any] = {"method": context.method, "source": context.source}
        if self.include_payloads and hasattr(context.message, "__dict__"):
            log_data["params"] = self._sanitize_message(context.message)

        self.logger.info("MCP request started", **log_data)

        try:
            result = await call_next(context)
        except Exception as e:
            self.logger.error(
                "MCP request failed",
                method=context.method,
                duration_ms=round((time.time() - start_time) * 1000, 2),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self.logger.info(
            "MCP request completed",
            method=context.method,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return result

    def _sanitize_message(self, message: Any) -> dict[str, Any]:
        sanitized: dict[str, Any] = {}
        for key, value in message.__dict__.items():
            if key.startswith("_"):
                continue
            if is_sensitive_field(key):
                sanitized[key] = "[REDACTED]"
                continue
            text = str(value)
            if len(text) > self.max_payload_length:
                sanitized[key] = text[: self.max_payload_length] + "... [TRUNCATED]"
            else:
                sanitized[key] = value if isinstance(value, (str, int, float, bool)) else text
        return sanitized
