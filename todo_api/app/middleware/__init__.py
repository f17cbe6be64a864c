"""
ASGI middleware wrapped around the router.

Each class takes the inner ASGI app and is itself an ASGI app, so they
compose by nesting.  ``todo_api.app.main.build_middleware`` fixes the
order they are applied in.
"""

from .os_context import OSContextMiddleware, detect_os
from .recovery import RecoveryMiddleware
from .request_logger import RequestLoggerMiddleware, UNKNOWN_OS

__all__ = [
    "OSContextMiddleware",
    "RecoveryMiddleware",
    "RequestLoggerMiddleware",
    "UNKNOWN_OS",
    "detect_os",
]
