"""Shared utilities: request context, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from app.shared.context import (
    RequestContext,
    clear_request_context,
    get_current_actor_id,
    get_current_tenant_id,
    get_request_context,
    get_request_id,
    set_request_context,
    set_request_id,
)
from app.shared.utils import (
    ensure_utc,
    from_timestamp_utc,
    generate_cuid,
    generate_secret,
    utc_now,
)

__all__ = [
    "RequestContext",
    "clear_request_context",
    "get_current_actor_id",
    "get_current_tenant_id",
    "get_request_context",
    "get_request_id",
    "set_request_context",
    "set_request_id",
    "generate_cuid",
    "generate_secret",
    "utc_now",
    "ensure_utc",
    "from_timestamp_utc",
]
