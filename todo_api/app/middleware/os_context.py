"""
OS context middleware.

Parses the ``User-Agent`` header into an operating-system family and
stores it in the request context before calling the inner app.
"""

import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send
from user_agents import parse as parse_user_agent

from ..core.context import RequestContext, get_request_context, set_request_context

logger = logging.getLogger(__name__)

# Placeholder stored when the header is missing or names no known OS.
UNDETECTED_OS = ""


def detect_os(user_agent: str) -> str:
    """Return the OS family named by ``user_agent``, never raising."""
    if not user_agent:
        return UNDETECTED_OS
    try:
        family = parse_user_agent(user_agent).os.family
    except Exception:
        logger.debug("could not parse user agent %r", user_agent, exc_info=True)
        return UNDETECTED_OS
    if not family or family == "Other":
        return UNDETECTED_OS
    return family


class OSContextMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        user_agent = Headers(scope=scope).get("user-agent", "")
        context = get_request_context(scope) or RequestContext()
        set_request_context(scope, context.with_os(detect_os(user_agent)))
        await self.app(scope, receive, send)
