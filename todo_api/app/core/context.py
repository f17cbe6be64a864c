"""
Per-request context values.

A ``RequestContext`` is attached to the ASGI scope's per-request
``state`` under a fixed key by the OS context middleware and read by
the request logger and the diagnostic endpoint.  Instances are frozen;
adding a value produces a new instance.
"""

from dataclasses import dataclass, replace
from typing import Any, MutableMapping, Optional, Union

from starlette.requests import HTTPConnection

REQUEST_CONTEXT_KEY = "request_context"


@dataclass(frozen=True)
class RequestContext:
    """Immutable bag of values scoped to a single request."""

    os: Optional[str] = None

    def with_os(self, os: str) -> "RequestContext":
        return replace(self, os=os)


def _scope_of(source: Union[HTTPConnection, MutableMapping[str, Any]]) -> MutableMapping[str, Any]:
    if isinstance(source, HTTPConnection):
        return source.scope
    return source


def get_request_context(
    source: Union[HTTPConnection, MutableMapping[str, Any]],
) -> Optional[RequestContext]:
    """Return the context stored for a request, or ``None`` if absent."""
    state = _scope_of(source).get("state") or {}
    return state.get(REQUEST_CONTEXT_KEY)


def set_request_context(scope: MutableMapping[str, Any], context: RequestContext) -> None:
    """Attach ``context`` to ``scope``, replacing the previous snapshot.

    Callers extend the existing context (``with_os``) rather than build
    an unrelated one, so values set earlier stay visible.
    """
    state = scope.setdefault("state", {})
    state[REQUEST_CONTEXT_KEY] = context
