"""Central exception hierarchy for the enrichment layer.

All custom exceptions inherit from EnrichmentLayerError.

Exception Hierarchy:
    EnrichmentLayerError (base)
    ├── EnrichmentError
    │   └── APIError
    │       ├── TransportFailure
    │       ├── UpstreamStatusError
    │       │   └── RateLimitError
    │       └── ResponseDecodeError
    └── ConfigurationError

The integration clients never let these escape their public methods: they are
raised by the transport layer and absorbed by the clients into None, empty or
partial results. They surface to callers only through
``AwardSearch.error`` and the coordinator's retry policy.

Usage:
    from govcon_enrichment.exceptions import APIError

    try:
        payload = transport.get_json("/geographies/onelineaddress", params=params)
    except APIError as e:
        logger.warning(f"Geocoding failed: {e.message}")
        if e.retryable:
            schedule_retry()
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Error codes for programmatic handling.

    Categories:
        1xxx - Configuration errors
        3xxx - External dependencies (upstream APIs)
        5xxx - Enrichment stage errors
    """

    # Configuration errors (1xxx)
    CONFIG_LOAD_FAILED = 1001
    CONFIG_VALIDATION_FAILED = 1002

    # External dependencies (3xxx)
    API_REQUEST_FAILED = 3101
    API_RATE_LIMIT = 3102
    API_TRANSPORT_FAILED = 3104
    API_DECODE_FAILED = 3105

    # Enrichment stage errors (5xxx)
    ENRICHMENT_FAILED = 5002


class FailureKind(str, Enum):
    """Classification of an outbound call outcome that produced no data."""

    DISABLED = "disabled"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


class EnrichmentLayerError(Exception):
    """Base exception for all enrichment layer errors.

    Attributes:
        message: Human-readable error description
        component: Component that raised the error (e.g., "api.census_geocoder")
        operation: Operation being performed (e.g., "geocode_address")
        details: Additional context as dictionary
        retryable: Whether operation can be retried
        status_code: Numeric error code from ErrorCode enum
        cause: Original exception if wrapping another error
    """

    def __init__(
        self,
        message: str,
        component: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        status_code: ErrorCode | None = None,
        cause: Exception | None = None,
    ):
        self.message = message
        self.component = component or self.__class__.__module__
        self.operation = operation
        self.details = details or {}
        self.retryable = retryable
        self.status_code = status_code
        self.cause = cause

        parts = [message]
        if component:
            parts.append(f"[component={component}]")
        if operation:
            parts.append(f"[operation={operation}]")
        if status_code:
            parts.append(f"[code={status_code}]")

        super().__init__(" ".join(parts))

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.

        Example:
            {
                "error_type": "UpstreamStatusError",
                "message": "HTTP 503",
                "component": "api.usaspending",
                "operation": "post_json",
                "details": {"endpoint": "/search/spending_by_award/", "http_status": 503},
                "retryable": true,
                "status_code": 3101,
                "cause": "Server error '503 Service Unavailable' ..."
            }
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "operation": self.operation,
            "details": self.details,
            "retryable": self.retryable,
            "status_code": self.status_code.value if self.status_code else None,
            "cause": str(self.cause) if self.cause else None,
        }


class EnrichmentError(EnrichmentLayerError):
    """Enrichment of a record or batch failed."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("status_code", ErrorCode.ENRICHMENT_FAILED)
        super().__init__(message, **kwargs)


class APIError(EnrichmentError):
    """External API call failed.

    Automatically marks 408, 429 and 5xx responses as retryable.
    """

    failure_kind: FailureKind = FailureKind.HTTP_STATUS

    def __init__(
        self,
        message: str,
        api_name: str | None = None,
        endpoint: str | None = None,
        http_status: int | None = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if endpoint:
            details["endpoint"] = endpoint
        if http_status:
            details["http_status"] = http_status
        self.http_status = http_status

        if "retryable" not in kwargs and http_status:
            kwargs["retryable"] = http_status in [408, 429, 500, 502, 503, 504]

        component = kwargs.pop("component", f"api.{api_name}" if api_name else "api")

        super().__init__(
            message,
            component=component,
            details=details,
            status_code=kwargs.pop("status_code", ErrorCode.API_REQUEST_FAILED),
            **kwargs,
        )


class TransportFailure(APIError):
    """Connection, timeout or protocol failure before a response was received."""

    failure_kind = FailureKind.TRANSPORT

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", True)
        kwargs.setdefault("status_code", ErrorCode.API_TRANSPORT_FAILED)
        super().__init__(message, **kwargs)


class UpstreamStatusError(APIError):
    """Upstream answered with a non-2xx status."""

    failure_kind = FailureKind.HTTP_STATUS


class RateLimitError(UpstreamStatusError):
    """API rate limit exceeded (HTTP 429). Always retryable."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs: Any):
        details = kwargs.pop("details", {})
        if retry_after:
            details["retry_after_seconds"] = retry_after

        kwargs["retryable"] = True
        super().__init__(
            message,
            details=details,
            status_code=ErrorCode.API_RATE_LIMIT,
            **kwargs,
        )


class ResponseDecodeError(APIError):
    """Response body was not JSON or did not have the expected shape."""

    failure_kind = FailureKind.DECODE

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", False)
        kwargs.setdefault("status_code", ErrorCode.API_DECODE_FAILED)
        super().__init__(message, **kwargs)


class ConfigurationError(EnrichmentLayerError):
    """Configuration loading or validation failed. Never retryable."""

    def __init__(self, message: str, config_key: str | None = None, **kwargs: Any):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key

        component = kwargs.pop("component", "config")

        super().__init__(
            message,
            component=component,
            details=details,
            status_code=kwargs.pop("status_code", ErrorCode.CONFIG_VALIDATION_FAILED),
            retryable=False,
            **kwargs,
        )


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def wrap_exception(
    original: Exception,
    error_class: type[EnrichmentLayerError],
    message: str | None = None,
    **kwargs: Any,
) -> EnrichmentLayerError:
    """Wrap a generic exception in a structured enrichment layer exception.

    Example:
        try:
            response = client.get(url)
        except httpx.TransportError as e:
            raise wrap_exception(e, TransportFailure, api_name="census_geocoder") from e
    """
    return error_class(message or str(original), cause=original, **kwargs)


def is_retryable(exc: Exception) -> bool:
    """Check if an exception is retryable."""
    if isinstance(exc, EnrichmentLayerError):
        return exc.retryable
    return False


def get_error_code(exc: Exception) -> int | None:
    """Get error code from exception if available."""
    if isinstance(exc, EnrichmentLayerError) and exc.status_code:
        return exc.status_code.value
    return None
