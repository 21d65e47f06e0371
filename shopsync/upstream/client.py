"""Resilient Admin REST API client bound to a single tenant.

Every call passes through a circuit breaker, then a bounded retry loop:

- 429 responses sleep for ``Retry-After`` seconds (or the backoff delay) and
  retry the same request;
- 5xx and 408 responses, and transport failures, retry with exponential
  backoff;
- any other non-2xx response fails immediately.

A call that ultimately raises counts as one circuit breaker failure; a call
that succeeds closes the circuit. The attempt counter lives in the loop, so
each call starts with a fresh retry budget.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import json
import time
import typing as typ

import httpx

from .circuit import CircuitBreaker, CircuitPhase
from .config import ClientConfig, backoff_delay
from .errors import (
    ApiClientConfigError,
    ApiClientError,
    AuthError,
    CircuitOpenError,
    NetworkError,
    RateLimitExceededError,
    UpstreamError,
    ValidationError,
)
from .observability import ClientEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc

type JSONValue = (
    dict[str, typ.Any] | list[typ.Any] | str | int | float | bool | None
)
type QueryParams = typ.Mapping[str, str | int]
type SleepFn = cabc.Callable[[float], cabc.Awaitable[None]]

_ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"  # noqa: S105 - header name
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_REQUEST_TIMEOUT = 408
_HTTP_SERVER_ERROR_THRESHOLD = 500
_AUTH_STATUSES = frozenset({401, 403})


@dc.dataclass(frozen=True, slots=True)
class ApiResponse:
    """Decoded JSON body plus the headers needed for pagination."""

    payload: JSONValue
    headers: httpx.Headers
    status_code: int


class PageClient(typ.Protocol):
    """Minimal interface the paginated fetcher needs from a client."""

    async def get_page(
        self, path: str, query: QueryParams | None = None
    ) -> ApiResponse:
        """Issue a GET and return the decoded body with response headers."""
        ...


def _is_transient(status_code: int) -> bool:
    return (
        status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        or status_code == _HTTP_REQUEST_TIMEOUT
    )


def _retry_after_seconds(response: httpx.Response) -> float | None:
    """Return the ``Retry-After`` delay in seconds, if present and numeric."""
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        # HTTP-date form is not used by the upstream; fall back to backoff.
        return None
    return value if value >= 0 else None


def _decode_json(response: httpx.Response, path: str) -> JSONValue:
    if not response.content:
        return None
    try:
        return response.json()
    except json.JSONDecodeError as exc:
        raise UpstreamError.malformed_body(path) from exc


class ShopifyApiClient:
    """Authenticated client for one tenant's storefront Admin API.

    One instance should live for as long as the tenant connection so that its
    circuit breaker state persists between sync runs.
    """

    def __init__(  # noqa: PLR0913
        self,
        shop_domain: str,
        access_token: str,
        *,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: cabc.Callable[[], float] = time.monotonic,
        event_logger: ClientEventLogger | None = None,
    ) -> None:
        """Bind the client to ``shop_domain`` using ``access_token``."""
        if not shop_domain.strip():
            raise ApiClientConfigError.empty_shop_domain()
        if not access_token.strip():
            raise ApiClientConfigError.empty_token()

        self._config = config or ClientConfig()
        self._base_url = (
            f"https://{shop_domain.strip()}/admin/api/{self._config.api_version}"
        )
        self._headers = {
            _ACCESS_TOKEN_HEADER: access_token,
            "Accept": "application/json",
            "User-Agent": self._config.user_agent,
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self._config.timeout_s)
        self._sleep = sleep
        self._circuit = CircuitBreaker(self._config.circuit, clock=clock)
        self._event_logger = event_logger or ClientEventLogger()

    def __repr__(self) -> str:
        """Describe the client without exposing the access token."""
        return f"{type(self).__name__}(base_url={self._base_url!r})"

    @property
    def base_url(self) -> str:
        """Return the versioned Admin API base URL."""
        return self._base_url

    @property
    def circuit(self) -> CircuitBreaker:
        """Return this client's circuit breaker."""
        return self._circuit

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        query: QueryParams | None = None,
        body: JSONValue = None,
    ) -> JSONValue:
        """Issue a request and return the decoded JSON body.

        Raises
        ------
        ApiClientError
            A classified failure: validation, auth, rate limit exhaustion,
            upstream exhaustion, network failure or open circuit.

        """
        response = await self._execute(method.upper(), path, query=query, body=body)
        return _decode_json(response, path)

    async def get(self, path: str, query: QueryParams | None = None) -> JSONValue:
        """Issue a GET request."""
        return await self.request("GET", path, query=query)

    async def post(self, path: str, body: JSONValue) -> JSONValue:
        """Issue a POST request with a JSON body."""
        return await self.request("POST", path, body=body)

    async def put(self, path: str, body: JSONValue) -> JSONValue:
        """Issue a PUT request with a JSON body."""
        return await self.request("PUT", path, body=body)

    async def delete(self, path: str) -> JSONValue:
        """Issue a DELETE request."""
        return await self.request("DELETE", path)

    async def get_page(
        self, path: str, query: QueryParams | None = None
    ) -> ApiResponse:
        """Issue a GET and keep the response headers for cursor extraction."""
        response = await self._execute("GET", path, query=query, body=None)
        return ApiResponse(
            payload=_decode_json(response, path),
            headers=response.headers,
            status_code=response.status_code,
        )

    async def _execute(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None,
        body: JSONValue,
    ) -> httpx.Response:
        """Gate the call on the circuit breaker and record its outcome."""
        if not self._circuit.allow_request():
            remaining = self._circuit.remaining_cooldown()
            self._event_logger.log_circuit_rejected(self._base_url, remaining)
            raise CircuitOpenError.for_base_url(self._base_url, remaining)

        probing = self._circuit.phase is CircuitPhase.HALF_OPEN
        if probing:
            self._event_logger.log_circuit_probe(self._base_url)

        try:
            response = await self._send_with_retries(
                method, path, query=query, body=body
            )
        except ApiClientError as exc:
            self._event_logger.log_request_failed(self._base_url, method, path, exc)
            self._record_failure()
            raise
        except Exception:
            # Unclassified errors still settle a half-open probe.
            self._record_failure()
            raise

        self._circuit.record_success()
        if probing:
            self._event_logger.log_circuit_closed(self._base_url)
        return response

    def _record_failure(self) -> None:
        if self._circuit.record_failure():
            self._event_logger.log_circuit_opened(
                self._base_url, self._circuit.state.consecutive_failures
            )

    async def _send_with_retries(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None,
        body: JSONValue,
    ) -> httpx.Response:
        """Send the request, retrying rate-limited and transient failures."""
        url = f"{self._base_url}{path}"
        policy = self._config.retry
        attempt = 0

        while True:
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=dict(query) if query else None,
                    json=body,
                    headers=self._headers,
                )
            except httpx.TransportError as exc:
                if attempt >= policy.max_retries:
                    raise NetworkError.from_transport(exc, attempt) from exc
                delay = backoff_delay(attempt, policy)
                reason = type(exc).__name__
            else:
                if response.is_success:
                    return response
                delay, reason = self._classify_failure(
                    method, path, response, attempt
                )

            self._event_logger.log_retry(
                self._base_url,
                method,
                path,
                attempt=attempt,
                delay_s=delay,
                reason=reason,
            )
            await self._sleep(delay)
            attempt += 1

    def _classify_failure(
        self,
        method: str,
        path: str,
        response: httpx.Response,
        attempt: int,
    ) -> tuple[float, str]:
        """Return ``(delay, reason)`` for a retryable response or raise."""
        policy = self._config.retry
        status = response.status_code

        if status == _HTTP_TOO_MANY_REQUESTS:
            if attempt >= policy.max_retries:
                raise RateLimitExceededError.exhausted(attempt)
            retry_after = _retry_after_seconds(response)
            delay = (
                retry_after
                if retry_after is not None
                else backoff_delay(attempt, policy)
            )
            return delay, f"http_{status}"

        if _is_transient(status):
            if attempt >= policy.max_retries:
                raise UpstreamError.exhausted(status, attempt)
            return backoff_delay(attempt, policy), f"http_{status}"

        if status in _AUTH_STATUSES:
            raise AuthError.rejected(status)
        raise ValidationError.rejected(method, path, status)
