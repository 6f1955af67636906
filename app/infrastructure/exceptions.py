"""Infrastructure exceptions for outbound integrations.

Upstream errors extend ExternalServiceException so presentation maps them
to 502 with a generic "Failed to ..." message; the cause is only logged.
"""

from app.domain.exceptions import ExternalServiceException


class UpstreamError(ExternalServiceException):
    """Third-party call failed (transport error, timeout or non-2xx status)."""

    def __init__(self, service: str, action: str, status_code: int | None = None) -> None:
        super().__init__(f"Failed to {action}", service)
        self.status_code = status_code
        if status_code is not None:
            self.details["upstream_status"] = status_code


class UpstreamPayloadError(ExternalServiceException):
    """Third-party call succeeded but returned a body we cannot interpret."""

    def __init__(self, service: str, action: str) -> None:
        super().__init__(f"Failed to {action}: unexpected response", service)
