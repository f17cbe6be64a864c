"""
Endpoint subpackage.

Each module defines an APIRouter for one area (health, TODOs,
diagnostics).  The routers are aggregated in ``api/router.py``.
"""

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]
