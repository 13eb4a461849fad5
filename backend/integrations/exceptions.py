"""Typed exception hierarchy for data feed errors.

Provides structured exceptions for differentiated error handling
(auth errors vs transient network errors vs data issues). All of them
are :class:`~errors.ExternalServiceError` so a boundary layer maps them
to 503 with the feed's name.
"""

from errors import ExternalServiceError


class ProviderError(ExternalServiceError):
    """Base exception for all feed-related errors.

    Carries the provider name so callers can identify which feed failed.
    """

    def __init__(self, message: str, provider_name: str = ""):
        self.provider_name = provider_name
        super().__init__(provider_name, message)


class ProviderAuthError(ProviderError):
    """API key missing, expired, or invalid (HTTP 401/403)."""

    pass


class ProviderConnectionError(ProviderError):
    """Network failures: timeouts, DNS resolution, connection refused.

    Retriable by default.
    """

    def __init__(self, message: str, provider_name: str = "", retriable: bool = True):
        self.retriable = retriable
        super().__init__(message, provider_name)


class ProviderAPIError(ProviderError):
    """HTTP 4xx/5xx responses (or in-body error payloads) from the feed."""

    def __init__(
        self,
        message: str,
        provider_name: str = "",
        http_status: int | None = None,
    ):
        super().__init__(message, provider_name)
        # Feed response status; status_code stays the boundary 503
        self.http_status = http_status

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.http_status is None:
            return False
        return self.http_status == 429 or self.http_status >= 500


class ProviderDataError(ProviderError):
    """Malformed or unparseable response from the feed."""

    pass


class UnsupportedVenueError(ProviderError):
    """The feed has no coverage for the requested venue (MIC)."""

    def __init__(self, mic: str, provider_name: str = ""):
        self.mic = mic
        super().__init__(f"MIC {mic} not supported by {provider_name or 'feed'}", provider_name)
