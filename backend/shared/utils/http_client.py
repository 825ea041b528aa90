"""
Async HTTP client wrapper for JSON source requests.
Single attempt per call with a bounded timeout; records metrics per request.
"""
from __future__ import annotations

import time
from typing import Any

import httpx

from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_REQUESTS

logger = get_logger(__name__)


class SourceHTTPClient:
    """
    Async HTTP client for structured score sources.
    No retries: a failed request is superseded by the next polling cycle.
    """

    def __init__(
        self,
        source_name: str,
        headers: dict[str, str] | None = None,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._source = source_name
        self._timeout = timeout_s
        self._default_headers = headers or {}
        self._transport = transport

    @property
    def timeout_s(self) -> float:
        return self._timeout

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        Perform a single GET and decode the JSON body.

        Args:
            url: Absolute endpoint URL.
            params: Query parameters.

        Returns:
            The decoded JSON document.

        Raises:
            httpx.TimeoutException: If the request exceeded the timeout.
            httpx.HTTPStatusError: On non-2xx responses.
            httpx.HTTPError: On other transport failures.
            ValueError: If the body is not valid JSON.
        """
        start_time = time.perf_counter()
        status = "unknown"
        try:
            async with httpx.AsyncClient(
                headers=self._default_headers,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                resp = await client.get(url, params=params)
                status = str(resp.status_code)
                resp.raise_for_status()
                data = resp.json()
            logger.debug(
                "source_request_success",
                source=self._source,
                url=url,
                status=resp.status_code,
                latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return data
        except httpx.TimeoutException:
            status = "timeout"
            logger.warning("source_timeout", source=self._source, url=url, timeout_s=self._timeout)
            raise
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "source_http_error",
                source=self._source,
                url=url,
                status=exc.response.status_code,
            )
            raise
        except httpx.HTTPError as exc:
            status = "error"
            logger.warning("source_request_error", source=self._source, url=url, error=str(exc))
            raise
        finally:
            SOURCE_REQUESTS.labels(source=self._source, status=status).inc()
