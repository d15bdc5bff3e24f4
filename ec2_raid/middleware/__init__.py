"""FastMCP middleware for the EC2 RAID server.

- LoggingMiddleware: structured request/response logging
- ErrorHandlingMiddleware: error classification and counting
"""

from .error_handling import ErrorHandlingMiddleware
from .logging import LoggingMiddleware

__all__ = ["ErrorHandlingMiddleware", "LoggingMiddleware"]
