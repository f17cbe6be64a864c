"""
Recovery middleware.

Contains any exception raised while serving a single request so that it
never reaches the server.  If the response has not started yet, the
client gets a plain-text 500.  If headers were already sent, the error
body is appended on a best-effort basis; whatever already reached the
client cannot be taken back.
"""

import logging

from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

ERROR_BODY = "Internal Server Error"


class RecoveryMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.error("panic: %r", exc, exc_info=True)
            if not response_started:
                response = PlainTextResponse(ERROR_BODY, status_code=500)
                await response(scope, receive, send)
                return
            try:
                await send(
                    {
                        "type": "http.response.body",
                        "body": ERROR_BODY.encode("utf-8"),
                        "more_body": False,
                    }
                )
            except Exception as write_exc:
                logger.error("write error: %r", write_exc)
