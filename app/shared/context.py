"""Request context management using contextvars.

Provides async-safe storage for request-scoped data: the request ID (set
by RequestIDMiddleware), and the tenant and API key of the authenticated
caller (set by the bearer token dependency). Read by the logging filter
so every log line carries them.

Usage:
    set_request_context(tenant_id="school-1", actor_id="key_123")
    tenant_id = get_current_tenant_id()
"""

from contextvars import ContextVar
from dataclasses import dataclass

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_current_tenant_id: ContextVar[str | None] = ContextVar("current_tenant_id", default=None)
_current_actor_id: ContextVar[str | None] = ContextVar("current_actor_id", default=None)


@dataclass(frozen=True)
class RequestContext:
    """Immutable snapshot of the current request context."""

    request_id: str | None
    tenant_id: str | None
    actor_id: str | None


def set_request_id(request_id: str | None) -> None:
    """Set the request ID for this task (called by RequestIDMiddleware)."""
    _request_id.set(request_id)


def set_request_context(tenant_id: str | None, actor_id: str | None = None) -> None:
    """Set the authenticated tenant and actor (API key id) for this request.

    Context is scoped to the current async task.
    """
    _current_tenant_id.set(tenant_id)
    _current_actor_id.set(actor_id)


def clear_request_context() -> None:
    """Clear all request-scoped values."""
    _request_id.set(None)
    _current_tenant_id.set(None)
    _current_actor_id.set(None)


def get_request_id() -> str | None:
    return _request_id.get()


def get_current_tenant_id() -> str | None:
    return _current_tenant_id.get()


def get_current_actor_id() -> str | None:
    """Return the API key id of the caller, or None for unauthenticated requests."""
    return _current_actor_id.get()


def get_request_context() -> RequestContext:
    """Return a snapshot of the current request context."""
    return RequestContext(
        request_id=_request_id.get(),
        tenant_id=_current_tenant_id.get(),
        actor_id=_current_actor_id.get(),
    )
