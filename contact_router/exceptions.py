"""Custom exception hierarchy for contact-router.

Every resolution failure is raised as one of these types and caught at the
request boundary (``ContactService``), where it is turned into the
fallback chain. Callers only ever see the human readable message.

Exception Hierarchy:
    ContactRouterError (base)
    ├── ConfigurationError
    │   ├── NoProvidersConfigured
    │   ├── NoAgenciesConfigured
    │   ├── EmptyStaticPool
    │   └── InvalidStaticNumber
    ├── ValidationError
    │   └── InvalidOverride
    └── UpstreamError
        ├── FetchError
        ├── UpstreamUnavailable
        ├── NoAdsAvailable
        ├── NoNumbersAvailable
        └── InvalidApiNumber
"""
from __future__ import annotations

from typing import Optional, Dict, Any


class ContactRouterError(Exception):
    """Base exception for all contact-router errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Configuration Errors
class ConfigurationError(ContactRouterError):
    """Raised when the routing tree cannot produce a candidate.

    Examples:
        - Routing YAML missing or malformed
        - Every provider weight disabled
    """
    pass


class NoProvidersConfigured(ConfigurationError):
    """No provider with a positive weight is configured."""

    def __init__(self, message: str = "No hay UPSTREAMS configurados", **kwargs):
        super().__init__(message, **kwargs)


class NoAgenciesConfigured(ConfigurationError):
    """The chosen provider has no agency with a positive weight."""

    def __init__(self, message: str = "No hay agencies configuradas", **kwargs):
        super().__init__(message, **kwargs)


class EmptyStaticPool(ConfigurationError):
    """Static route won but the pool has no selectable number."""

    def __init__(self, message: str = "Pool estático vacío", **kwargs):
        super().__init__(message, **kwargs)


class InvalidStaticNumber(ConfigurationError):
    """A configured static number does not normalize."""

    def __init__(self, message: str = "Número estático inválido", **kwargs):
        super().__init__(message, **kwargs)


# Validation Errors
class ValidationError(ContactRouterError):
    """Raised when request input validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, code, details)


class InvalidOverride(ValidationError):
    """Raised when a forced ``upstream`` or ``agency_id`` cannot be honoured."""
    pass


# Upstream Errors
class UpstreamError(ContactRouterError):
    """Base class for errors coming from a provider API.

    Attributes:
        provider: Key of the provider that failed
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider
        details = details or {}
        if provider:
            details["provider"] = provider
        super().__init__(message, code, details)


class FetchError(UpstreamError):
    """A single HTTP attempt failed (timeout, transport, non-2xx, bad body).

    Attributes:
        http_status: Status code when the server answered, else None
        elapsed_ms: Time spent on the attempt
    """

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        elapsed_ms: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        self.http_status = http_status
        self.elapsed_ms = elapsed_ms
        details: Dict[str, Any] = {}
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(message, provider, None, details)


class UpstreamUnavailable(UpstreamError):
    """Raised when the retry budget is exhausted.

    Attributes:
        status: Last observed HTTP status (None for timeouts/transport errors)
        attempts: Number of attempts made
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        attempts: int = 0,
        provider: Optional[str] = None,
    ):
        self.status = status
        self.attempts = attempts
        super().__init__(message, provider, None, {"status": status, "attempts": attempts})


class NoAdsAvailable(UpstreamError):
    """Ads-only policy is active and the ads list came back empty."""

    def __init__(self, message: str = "ONLY_ADS activo y ads vacío", **kwargs):
        super().__init__(message, **kwargs)


class NoNumbersAvailable(UpstreamError):
    """Both the ads and the normal list came back empty."""

    def __init__(self, message: str = "Sin números disponibles", **kwargs):
        super().__init__(message, **kwargs)


class InvalidApiNumber(UpstreamError):
    """The number picked from the API payload does not normalize."""

    def __init__(self, message: str = "Número inválido", **kwargs):
        super().__init__(message, **kwargs)


# Retry classification
def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable.

    Only single-attempt fetch failures are transient. Configuration and
    override errors are deterministic.
    """
    return isinstance(error, FetchError)

