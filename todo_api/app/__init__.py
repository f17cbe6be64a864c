"""
Application package initializer.

The project is organised into a few small pieces: ``core`` holds
configuration, logging, storage, security and the server lifecycle;
``middleware`` holds the request wrappers composed around the router;
``api`` defines the routes; ``services`` and ``schemas`` hold the TODO
persistence logic and its wire models.
"""

from .main import create_app  # noqa: F401
