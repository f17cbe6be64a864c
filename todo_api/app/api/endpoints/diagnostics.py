"""
Diagnostic endpoints.

``/do-panic`` fails on purpose so the recovery middleware can be
observed from the outside.  ``/test-os`` echoes the ``User-Agent``
header together with the OS family the OS context middleware stored
for the request.
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse

from todo_api.app.api.endpoints import ALL_METHODS
from todo_api.app.core.context import get_request_context
from todo_api.app.core.exceptions import ContextMissingError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route("/do-panic", methods=ALL_METHODS)
async def do_panic() -> None:
    raise RuntimeError("Panic!")


def _detected_os(request: Request) -> str:
    context = get_request_context(request)
    if context is None or context.os is None:
        raise ContextMissingError("OS information not found in context")
    return context.os


@router.api_route("/test-os", methods=ALL_METHODS, response_class=PlainTextResponse)
async def test_os(request: Request) -> PlainTextResponse:
    """Return the User-Agent and the OS detected from it."""
    try:
        os_info = _detected_os(request)
    except ContextMissingError as exc:
        logger.warning("%s for %s", exc.message, request.url.path)
        return PlainTextResponse(exc.message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    user_agent = request.headers.get("user-agent", "")
    return PlainTextResponse(f"User-Agent: {user_agent}\nDetected OS: {os_info}")
