"""
Top‑level package for the TODO API.

All functionality lives in submodules under ``app``; import the ASGI
application factory from ``todo_api.app.main``.
"""

__all__ = []
