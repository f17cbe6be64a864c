"""
Top-level router.

Paths are matched exactly.  Basic authentication is attached only to
the TODO router; the health and diagnostic endpoints are public.
"""

from fastapi import APIRouter, Depends

from todo_api.app.core.security import require_basic_auth

from .endpoints import diagnostics, healthz, todos

router = APIRouter()

router.include_router(healthz.router, tags=["health"])
router.include_router(
    todos.router,
    tags=["todos"],
    dependencies=[Depends(require_basic_auth)],
)
router.include_router(diagnostics.router, tags=["diagnostics"])
