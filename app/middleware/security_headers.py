"""Security headers middleware (raw ASGI).

LTI launches are rendered inside the platform's iframe, so paths under
/api/lti drop X-Frame-Options and use frame-ancestors instead.
"""

from typing import Callable

DEFAULT_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

FRAMEABLE_PREFIXES = ("/api/lti/",)
FRAMEABLE_CSP = "default-src 'none'; frame-ancestors *"


def _encode(headers: dict[str, str]) -> list[tuple[bytes, bytes]]:
    return [(k.lower().encode(), v.encode()) for k, v in headers.items()]


def SecurityHeadersMiddleware(app: Callable, frameable_prefixes: tuple[str, ...] = FRAMEABLE_PREFIXES) -> Callable:
    strict = _encode(DEFAULT_HEADERS)
    frameable = _encode(
        {
            **{k: v for k, v in DEFAULT_HEADERS.items() if k != "X-Frame-Options"},
            "Content-Security-Policy": FRAMEABLE_CSP,
        }
    )

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        extra = frameable if scope.get("path", "").startswith(frameable_prefixes) else strict

        async def send_wrapper(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                seen = {name.lower() for name, _ in headers}
                headers.extend((name, value) for name, value in extra if name not in seen)
                message["headers"] = headers
            await send(message)

        await app(scope, receive, send_wrapper)

    return asgi_app
