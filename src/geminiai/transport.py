"""HTTP transport for the Gemini REST API.

Wraps an ``httpx.AsyncClient`` and is the only place that knows about
authentication, JSON encoding, and transient retries.  Everything above it
sees a :class:`TransportResponse` or a :class:`~geminiai.exceptions.TransportError`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from geminiai.config import ClientConfig
from geminiai.exceptions import TransportError

logger = logging.getLogger(__name__)

# Statuses worth retrying; anything else is returned to the caller.
RETRYABLE_STATUSES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class TransportResponse:
    """Status, headers and decoded body of a completed request.

    ``body`` is the decoded JSON when the response declares a JSON content
    type and parses, otherwise the raw bytes.
    """

    status: int
    headers: httpx.Headers
    body: Any

    def header_values(self, name: str) -> list[str]:
        """Return every value of header *name* (case-insensitive), possibly none."""
        return self.headers.get_list(name)


class HttpTransport:
    """Issues authenticated requests against the configured service.

    Usage::

        async with HttpTransport(config) as transport:
            response = await transport.request("GET", "/v1beta/files")

    Args:
        config: Client configuration (base URL, key, timeout, retries).
        transport: Optional httpx transport, e.g. ``httpx.MockTransport``
            in tests.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
        json: Any = None,
        content: bytes | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        retry: bool = True,
    ) -> TransportResponse:
        """Send one request, retrying transient failures.

        Relative *url* values resolve against ``config.base_url``; absolute
        ones (such as a service-issued upload URL) are used as-is.  Query
        parameters already on *url* are kept and *params* merged over them.

        Args:
            method: HTTP method.
            url: Path or absolute URL.
            headers: Extra request headers; a list of pairs allows repeats.
            json: JSON-encodable body.
            content: Raw byte body (mutually exclusive with *json*).
            params: Query parameters.
            authenticated: Add the ``key`` query parameter.
            retry: Retry transient failures.  Pass ``False`` for requests
                that must not be sent twice, such as a single-use upload URL.

        Returns:
            The final response, whatever its status. Non-2xx statuses are
            left for the caller to interpret.

        Raises:
            TransportError: If the request could not be completed after all
                retries.
        """
        query = dict(params or {})
        if authenticated:
            query["key"] = self._config.api_key
        # httpx replaces an existing query string when given params=.
        target = httpx.URL(url).copy_merge_params(query)

        attempts = self._config.max_retries + 1 if retry else 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                min=self._config.retry_min_wait, max=self._config.retry_max_wait
            ),
            retry=(
                retry_if_exception_type(httpx.TransportError)
                | retry_if_result(lambda r: r.status_code in RETRYABLE_STATUSES)
            ),
            # Out of attempts: hand back the last response, or re-raise the
            # last exception.
            retry_error_callback=lambda state: state.outcome.result(),
            before_sleep=_log_retry,
        )

        try:
            response = await retrying(
                self._client.request,
                method,
                target,
                headers=headers,
                json=json,
                content=content,
            )
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {_redact(url)} failed: {exc!r}") from exc

        logger.debug("%s %s -> %d", method, _redact(url), response.status_code)
        return TransportResponse(
            status=response.status_code,
            headers=response.headers,
            body=_decode_body(response),
        )


def _decode_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if "json" in content_type and response.content:
        try:
            return json.loads(response.content)
        except ValueError:
            logger.debug("Response declared JSON but did not parse; keeping raw body")
    return response.content


def _redact(url: str) -> str:
    """Drop the query string so upload ids and keys stay out of logs."""
    return url.split("?", 1)[0]


def _log_retry(retry_state: Any) -> None:
    outcome = retry_state.outcome
    if outcome.failed:
        reason = repr(outcome.exception())
    else:
        reason = f"HTTP {outcome.result().status_code}"
    logger.warning(
        "Transient failure (%s), retrying (attempt %d)",
        reason,
        retry_state.attempt_number,
    )
