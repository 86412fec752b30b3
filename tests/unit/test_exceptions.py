"""Unit tests for the centralized exception module.

Tests cover:
- Base exception class functionality
- Exception hierarchy and failure kinds
- Retryability rules for upstream statuses
- Helper functions (wrap_exception, is_retryable, get_error_code)
"""

import httpx
import pytest

from govcon_enrichment.exceptions import (
    APIError,
    ConfigurationError,
    EnrichmentError,
    EnrichmentLayerError,
    ErrorCode,
    FailureKind,
    RateLimitError,
    ResponseDecodeError,
    TransportFailure,
    UpstreamStatusError,
    get_error_code,
    is_retryable,
    wrap_exception,
)


pytestmark = pytest.mark.fast


class TestBaseException:
    """Tests for EnrichmentLayerError base class."""

    def test_base_exception_minimal(self):
        exc = EnrichmentLayerError("Test error")

        assert exc.message == "Test error"
        assert exc.component is not None
        assert exc.operation is None
        assert exc.details == {}
        assert exc.retryable is False
        assert exc.status_code is None
        assert exc.cause is None
        assert str(exc) == "Test error"

    def test_base_exception_full(self):
        cause = ValueError("Original error")
        exc = EnrichmentLayerError(
            "Test error",
            component="api.census_geocoder",
            operation="geocode_address",
            details={"address": "x"},
            retryable=True,
            status_code=ErrorCode.ENRICHMENT_FAILED,
            cause=cause,
        )

        assert "[component=api.census_geocoder]" in str(exc)
        assert "[operation=geocode_address]" in str(exc)
        assert exc.cause is cause

    def test_to_dict(self):
        exc = EnrichmentLayerError(
            "Boom",
            component="api.usaspending",
            operation="post",
            status_code=ErrorCode.API_REQUEST_FAILED,
            cause=RuntimeError("inner"),
        )

        data = exc.to_dict()

        assert data["error_type"] == "EnrichmentLayerError"
        assert data["message"] == "Boom"
        assert data["status_code"] == 3101
        assert data["cause"] == "inner"


class TestHierarchy:
    """Tests for the APIError family."""

    @pytest.mark.parametrize(
        "exc_class",
        [TransportFailure, UpstreamStatusError, RateLimitError, ResponseDecodeError],
    )
    def test_subclasses_are_api_errors(self, exc_class):
        exc = exc_class("failure", api_name="usaspending")

        assert isinstance(exc, APIError)
        assert isinstance(exc, EnrichmentError)
        assert isinstance(exc, EnrichmentLayerError)
        assert exc.component == "api.usaspending"

    @pytest.mark.parametrize(
        ("exc_class", "kind"),
        [
            (TransportFailure, FailureKind.TRANSPORT),
            (UpstreamStatusError, FailureKind.HTTP_STATUS),
            (RateLimitError, FailureKind.HTTP_STATUS),
            (ResponseDecodeError, FailureKind.DECODE),
        ],
    )
    def test_failure_kind(self, exc_class, kind):
        assert exc_class("failure").failure_kind == kind

    def test_api_error_records_endpoint_and_status(self):
        exc = UpstreamStatusError(
            "HTTP 404", api_name="usaspending", endpoint="/recipient/X/", http_status=404
        )

        assert exc.http_status == 404
        assert exc.details == {"endpoint": "/recipient/X/", "http_status": 404}
        assert exc.status_code == ErrorCode.API_REQUEST_FAILED

    def test_rate_limit_error_details(self):
        exc = RateLimitError("Slow down", retry_after=30, http_status=429)

        assert exc.retryable is True
        assert exc.status_code == ErrorCode.API_RATE_LIMIT
        assert exc.details["retry_after_seconds"] == 30

    def test_configuration_error(self):
        exc = ConfigurationError("Missing key", config_key="census.geocoder_url")

        assert exc.component == "config"
        assert exc.details["config_key"] == "census.geocoder_url"
        assert exc.retryable is False


class TestRetryability:
    """Tests for status-based retry classification."""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert UpstreamStatusError("x", http_status=status).retryable is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_non_retryable_statuses(self, status):
        assert UpstreamStatusError("x", http_status=status).retryable is False

    def test_transport_failure_retryable_by_default(self):
        assert TransportFailure("timeout").retryable is True

    def test_decode_failure_not_retryable(self):
        assert ResponseDecodeError("not json").retryable is False


class TestHelpers:
    """Tests for helper functions."""

    def test_wrap_exception(self):
        original = httpx.ConnectError("connection refused")

        wrapped = wrap_exception(original, TransportFailure, api_name="census_geocoder")

        assert isinstance(wrapped, TransportFailure)
        assert wrapped.cause is original
        assert wrapped.message == "connection refused"
        assert wrapped.component == "api.census_geocoder"

    def test_wrap_exception_custom_message(self):
        wrapped = wrap_exception(ValueError("bad"), EnrichmentError, message="Enrichment failed")

        assert wrapped.message == "Enrichment failed"

    def test_is_retryable(self):
        assert is_retryable(TransportFailure("x")) is True
        assert is_retryable(ResponseDecodeError("x")) is False
        assert is_retryable(ValueError("x")) is False

    def test_get_error_code(self):
        assert get_error_code(RateLimitError("x")) == 3102
        assert get_error_code(TransportFailure("x")) == 3104
        assert get_error_code(ResponseDecodeError("x")) == 3105
        assert get_error_code(ValueError("x")) is None
