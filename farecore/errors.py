"""Error types raised by providers, the orchestrator and the price monitor."""


class FlightDataError(Exception):
    """Base class for all flight data errors."""


class ProviderError(FlightDataError):
    """A single provider's attempt failed."""

    kind = "provider"
    transient = True

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class AuthenticationError(ProviderError):
    """Credentials missing or rejected by the credential exchange."""

    kind = "authentication"
    transient = False


class RateLimitExceeded(ProviderError):
    """Local admission denial; no network call was made."""

    kind = "rate_limited"


class ProviderTimeoutError(ProviderError):
    kind = "timeout"


class UpstreamError(ProviderError):
    """Upstream answered with a non-success status or could not be reached."""

    kind = "upstream"

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message, provider)
        self.status_code = status_code


class EmptyResultError(ProviderError):
    kind = "empty"


class AggregateProviderFailure(FlightDataError):
    """Every provider failed or returned nothing."""

    def __init__(self, errors: list[ProviderError]):
        self.errors = list(errors)
        messages = "; ".join(str(e) for e in self.errors) or "no providers configured"
        super().__init__(f"All flight data providers failed: {messages}")

    @property
    def misconfigured(self) -> bool:
        return bool(self.errors) and all(isinstance(e, AuthenticationError) for e in self.errors)

    @property
    def degraded(self) -> bool:
        return any(e.transient for e in self.errors)

    def to_dict(self) -> dict:
        return {
            "error": "all_providers_failed",
            "message": str(self),
            "misconfigured": self.misconfigured,
            "degraded": self.degraded,
            "causes": [
                {"provider": e.provider, "kind": e.kind, "message": e.message}
                for e in self.errors
            ],
        }


class NoDataAvailable(FlightDataError):
    """A monitor tick found no price to record."""
