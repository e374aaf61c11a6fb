"""Shared HTTP plumbing for hosted embedding and generation providers."""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from docrag.errors import ProviderError, ProviderUnavailable, RateLimited

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class JSONClient:
    """Small wrapper around `httpx.Client` that maps failures onto DocRAG errors.

    Every request carries a bounded timeout. Connection problems, timeouts and
    5xx answers become `ProviderUnavailable`, HTTP 429 becomes `RateLimited`,
    and anything else that is not a JSON object becomes `ProviderError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.post(path, json=payload)
        except httpx.TimeoutException as exc:
            LOGGER.error("Request to %s%s timed out after %ss", self.base_url, path, self.timeout)
            raise ProviderUnavailable(f"Timed out after {self.timeout}s calling {path}") from exc
        except httpx.TransportError as exc:
            LOGGER.error("Cannot reach %s%s: %s", self.base_url, path, exc)
            raise ProviderUnavailable(f"Cannot reach {self.base_url}: {exc}") from exc

        status = response.status_code
        if status == 429:
            retry_after = _parse_retry_after(response)
            LOGGER.warning("Provider %s throttled request (retry_after=%s)", self.base_url, retry_after)
            raise RateLimited(f"Rate limited by {self.base_url}", retry_after=retry_after)
        if status >= 500:
            raise ProviderUnavailable(f"Provider {self.base_url} returned HTTP {status}")
        if status >= 400:
            raise ProviderError(f"Provider {self.base_url} rejected request: HTTP {status} {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"Provider {self.base_url} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"Provider {self.base_url} returned {type(data).__name__}, expected object")
        return data
