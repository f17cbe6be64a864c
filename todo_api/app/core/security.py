"""
HTTP basic authentication for protected routes.

``require_basic_auth`` is a FastAPI dependency attached to the routers
that need protection (currently only ``/todos``).  It compares the
credentials of the ``Authorization`` header against the single static
user configured in ``Settings``.  Requests with a missing or malformed
header, or with a wrong user or password, are rejected with 401 and a
``WWW-Authenticate`` challenge before the endpoint runs.
"""

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import Settings

REALM = "Restricted"

security = HTTPBasic(realm=REALM, auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def _matches(given: str, expected: str) -> bool:
    # Constant-time comparison to prevent timing attacks
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was created with."""
    return request.app.state.settings


def require_basic_auth(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> str:
    """Validate HTTP basic credentials and return the authenticated user ID.

    ``HTTPBasic`` itself raises 401 (with the realm challenge) when the
    header uses the basic scheme but cannot be decoded; every other
    failure is raised here.
    """
    if credentials is None:
        raise _unauthorized()
    user_ok = _matches(credentials.username, settings.basic_auth_user_id)
    password_ok = _matches(credentials.password, settings.basic_auth_password)
    if not (user_ok and password_ok):
        raise _unauthorized()
    return credentials.username
