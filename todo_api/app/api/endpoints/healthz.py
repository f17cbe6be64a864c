"""
Health check endpoint.

The handler waits ``settings.healthz_delay`` seconds before answering,
which makes it a convenient slow request for exercising graceful
shutdown.
"""

import asyncio

from fastapi import APIRouter, Depends

from todo_api.app.api.endpoints import ALL_METHODS
from todo_api.app.core.config import Settings
from todo_api.app.core.security import get_settings
from todo_api.app.schemas.healthz import HealthzResponse

router = APIRouter()


@router.api_route("/healthz", methods=ALL_METHODS, response_model=HealthzResponse)
async def healthz(settings: Settings = Depends(get_settings)) -> HealthzResponse:
    await asyncio.sleep(settings.healthz_delay)
    return HealthzResponse(message="OK")
