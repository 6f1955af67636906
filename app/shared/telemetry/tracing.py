"""@traced: one span per service operation, tagged with gateway identifiers.

Arguments are bound to the wrapped signature so positional calls are tagged
the same as keyword calls. Only identifier arguments become attributes;
credentials, payloads and request bodies never do.
"""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from app.domain.exceptions import EdPsychException

P = ParamSpec("P")
T = TypeVar("T")

SPAN_ARGUMENTS = frozenset({
    "tenant_id", "source_id", "registration_id", "platform_id",
    "event_type", "user_id", "assessment_id", "attempt_id", "video_pk",
})


def _tracer() -> trace.Tracer:
    return trace.get_tracer(__name__)


def span_attributes(bound: inspect.BoundArguments) -> dict[str, str]:
    """gateway.* attributes for the identifier arguments of one call."""
    attributes = {
        f"gateway.{name}": str(value)
        for name, value in bound.arguments.items()
        if name in SPAN_ARGUMENTS and value is not None
    }
    kind = getattr(bound.arguments.get("self"), "KIND", None)
    if kind is not None:
        attributes["gateway.kind"] = str(getattr(kind, "value", kind))
    return attributes


def traced(operation_name: str) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Run an async service method inside a span named operation_name.

    Domain errors (EdPsychException) mark the span with their error code;
    anything else is recorded as an exception.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            bound = signature.bind_partial(*args, **kwargs)
            with _tracer().start_as_current_span(
                operation_name,
                attributes=span_attributes(bound),
                record_exception=False,
                set_status_on_exception=False,
            ) as span:
                try:
                    result = await func(*args, **kwargs)
                except EdPsychException as e:
                    span.set_attribute("gateway.error_code", e.error_code)
                    span.set_status(Status(StatusCode.ERROR, e.error_code))
                    raise
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, type(e).__name__))
                    raise
                return result

        return wrapper

    return decorator
