"""Typed exception hierarchy for upstream catalog API errors.

Provides structured exceptions for differentiated error handling
(permission errors vs transient network errors vs data issues).
"""


class UpstreamError(Exception):
    """Base exception for all upstream catalog API errors.

    Carries the HTTP status code when the failure came from a response.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UpstreamAPIError(UpstreamError):
    """HTTP 4xx/5xx responses from the upstream API."""

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class UpstreamAuthError(UpstreamAPIError):
    """Token missing, expired, or invalid (HTTP 401)."""

    pass


class UpstreamPermissionDenied(UpstreamAPIError):
    """Token is valid but lacks access to the resource (HTTP 403).

    The attributes endpoint commonly answers with this for integration
    tokens that were not granted the catalog attribute ACL.
    """

    pass


class UpstreamNotFound(UpstreamAPIError):
    """The requested resource does not exist (HTTP 404)."""

    pass


class UpstreamTimeout(UpstreamError):
    """The request did not complete within the configured timeout."""

    pass


class UpstreamConnectionError(UpstreamError):
    """Network failures - DNS resolution, connection refused or reset."""

    pass


class UpstreamDataError(UpstreamError):
    """Malformed or unparseable response from the upstream API."""

    pass
