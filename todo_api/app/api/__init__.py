"""
API package.

``router`` aggregates the endpoint routers defined under ``endpoints``
and is included by the application factory.
"""
