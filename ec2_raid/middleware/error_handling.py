"""Error handling middleware for the EC2 RAID server."""

from collections import defaultdict
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.logging_config import get_middleware_logger


class ErrorHandlingMiddleware(Middleware):
    """Logs and counts errors that escape tool handlers.

    Domain failures never get here: the tools turn them into error results.
    """

    def __init__(self, include_traceback: bool = True, track_error_stats: bool = True):
        self.logger = get_middleware_logger()
        self.include_traceback = include_traceback
        self.track_error_stats = track_error_stats
        self.error_stats: dict[str, int] = defaultdict(int)

    async def on_message(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except Exception as e:
            self._handle_error(e, context)
            raise  # Always re-raise to preserve FastMCP error handling

    def _handle_error(self, error: Exception, context: MiddlewareContext) -> None:
        error_type = type(error).__name__
        error_data: dict[str, Any] = {
            "error_type": error_type,
            "error_message": str(error),
            "method": context.method,
            "source": context.source,
        }

        if self.track_error_stats:
            key = f"{error_type}:{context.method}"
            self.error_stats[key] += 1
            error_data["error_occurrence_count"] = self.error_stats[key]

        self.logger.error("Error in MCP request", **error_data, exc_info=self.include_traceback)

    def get_error_statistics(self) -> dict[str, Any]:
        if not self.track_error_stats:
            return {"error_tracking": "disabled"}
        return {
            "total_errors": sum(self.error_stats.values()),
            "error_distribution": dict(self.error_stats),
        }
