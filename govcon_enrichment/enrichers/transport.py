"""Rate-limited JSON transport shared by the integration clients.

Every outbound request goes through `RateLimitedTransport`, which paces the
call through a `RateLimiter`, issues it on an `httpx.Client` and maps each
failure to a typed `APIError` subclass:

    httpx.TimeoutException / httpx.RequestError   -> TransportFailure
    non-2xx response (429)                        -> RateLimitError
    non-2xx response (other)                      -> UpstreamStatusError
    body is not a JSON object                     -> ResponseDecodeError

No retries happen here. Clients absorb these errors into their None/empty
contracts; the coordinator decides whether to retry.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from ..exceptions import (
    ConfigurationError,
    RateLimitError,
    ResponseDecodeError,
    TransportFailure,
    UpstreamStatusError,
    wrap_exception,
)
from ..utils.rate_limiter import RateLimiter


USER_AGENT = "govcon-enrichment/0.1.0"


class RateLimitedTransport:
    """Paced JSON GET/POST against one API base URL."""

    def __init__(
        self,
        base_url: str,
        rate_limiter: RateLimiter,
        *,
        timeout: float = 30,
        api_name: str = "api",
        http_client: httpx.Client | None = None,
    ):
        """Initialize the transport.

        Args:
            base_url: API base URL; endpoints are joined onto it
            rate_limiter: Limiter consulted before every request
            timeout: Request timeout in seconds (ignored for injected clients)
            api_name: Name used in error components and log lines
            http_client: Optional pre-configured HTTPX client (useful for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.api_name = api_name
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def get_json(self, endpoint: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("GET", endpoint, params=params)

    def post_json(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", endpoint, body=body)

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one paced request and decode a JSON object body.

        Raises:
            TransportFailure: Connection error or timeout
            RateLimitError: Upstream answered 429
            UpstreamStatusError: Upstream answered any other non-2xx status
            ResponseDecodeError: Body is not JSON or not a JSON object
        """
        url = self.url_for(endpoint)
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}

        self.rate_limiter.wait()

        try:
            if method == "GET":
                response = self._client.get(url, params=params, headers=headers)
            elif method == "POST":
                response = self._client.post(url, json=body, headers=headers)
            else:
                raise ConfigurationError(
                    f"Unsupported HTTP method: {method}",
                    component=f"api.{self.api_name}",
                    operation="_request",
                    details={"method": method, "supported_methods": ["GET", "POST"]},
                )
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 429:
                retry_after = e.response.headers.get("Retry-After")
                raise RateLimitError(
                    "Rate limit exceeded",
                    retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                    api_name=self.api_name,
                    endpoint=endpoint,
                    http_status=status,
                    operation=method.lower(),
                    cause=e,
                ) from e
            raise UpstreamStatusError(
                f"HTTP {status}: {e.response.text[:200]}",
                api_name=self.api_name,
                endpoint=endpoint,
                http_status=status,
                operation=method.lower(),
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportFailure(
                f"Request timeout: {e}",
                api_name=self.api_name,
                endpoint=endpoint,
                operation=method.lower(),
                cause=e,
            ) from e
        except httpx.RequestError as e:
            # Connection, protocol, redirect and content-decoding failures.
            raise wrap_exception(
                e,
                TransportFailure,
                f"Request error ({type(e).__name__}): {e}",
                api_name=self.api_name,
                endpoint=endpoint,
                operation=method.lower(),
            ) from e

        try:
            payload = response.json()
        except (ValueError, RecursionError) as e:
            raise ResponseDecodeError(
                f"Response is not valid JSON: {response.text[:200]}",
                api_name=self.api_name,
                endpoint=endpoint,
                operation=method.lower(),
                cause=e,
            ) from e

        if not isinstance(payload, dict):
            raise ResponseDecodeError(
                f"Expected a JSON object, got {type(payload).__name__}",
                api_name=self.api_name,
                endpoint=endpoint,
                operation=method.lower(),
            )

        logger.trace(f"{self.api_name} {method} {endpoint} -> {response.status_code}")
        return payload


__all__ = ["RateLimitedTransport", "USER_AGENT"]
