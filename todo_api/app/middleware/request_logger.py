"""
Request logging middleware.

Emits one JSON line per request on the ``todo_api.access`` logger once
the inner app has returned:

    {"timestamp": "...", "latency": 1234, "path": "/todos", "os": "Windows"}

``timestamp`` is the request start in the configured time zone and
``latency`` the elapsed time in microseconds.
"""

import json
import logging
import time
from datetime import datetime, timezone, tzinfo

from starlette.types import ASGIApp, Receive, Scope, Send

from ..core.context import get_request_context
from ..core.logging_config import ACCESS_LOGGER

logger = logging.getLogger(ACCESS_LOGGER)

UNKNOWN_OS = "unknown"


class RequestLoggerMiddleware:
    def __init__(self, app: ASGIApp, tz: tzinfo = timezone.utc) -> None:
        self.app = app
        self.tz = tz

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = datetime.now(self.tz)
        started = time.perf_counter()
        try:
            await self.app(scope, receive, send)
        finally:
            latency = int((time.perf_counter() - started) * 1_000_000)
            context = get_request_context(scope)
            os_info = context.os if context is not None and context.os is not None else UNKNOWN_OS
            record = {
                "timestamp": start_time.isoformat(),
                "latency": latency,
                "path": scope.get("path", ""),
                "os": os_info,
            }
            logger.info(json.dumps(record))
