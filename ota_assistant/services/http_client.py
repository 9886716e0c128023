"""Shared JSON-over-HTTP client with retry logic and timeout handling.

Every REST integration (Aviationstack, Open-Meteo, and the Gemini, OpenAI
and FreeFlow model backends) goes through :class:`JsonHttpClient`, so
they all retry the same way: exponential backoff on transport errors
(timeouts, refused connections, ...) and 5xx responses, and an immediate
failure on 4xx.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 15.0


class UpstreamAPIError(Exception):
    """Raised when an upstream HTTP call fails after all retries."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class JsonHttpClient:
    """Thin ``httpx.Client`` wrapper that speaks JSON and retries."""

    def __init__(
        self,
        name: str,
        base_url: str = "",
        *,
        headers: dict[str, str] | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
    ):
        self.name = name
        self._max_retries = max_retries
        self._client = httpx.Client(
            base_url=base_url,
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=timeout,
        )

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(
        self,
        path: str,
        *,
        json_body: dict[str, Any],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return self.request("POST", path, params=params, json_body=json_body, headers=headers)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Execute an HTTP request with exponential-backoff retries."""
        last_error: Exception | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._client.request(
                    method,
                    path,
                    params=params,
                    json=json_body,
                    headers=headers,
                )
                if response.status_code >= 500:
                    raise UpstreamAPIError(
                        f"{self.name} server error {response.status_code}: {response.text[:300]}",
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise UpstreamAPIError(
                        f"{self.name} client error {response.status_code}: {response.text[:300]}",
                        status_code=response.status_code,
                    )
                try:
                    return response.json()
                except ValueError as exc:
                    raise UpstreamAPIError(
                        f"{self.name} returned a non-JSON body", status_code=response.status_code,
                    ) from exc

            except httpx.TransportError as exc:
                last_error = exc
                logger.warning(
                    "%s attempt %d/%d failed (%s)",
                    self.name,
                    attempt,
                    self._max_retries,
                    type(exc).__name__,
                )
            except UpstreamAPIError as exc:
                if exc.status_code and exc.status_code >= 500:
                    last_error = exc
                    logger.warning(
                        "%s server error on attempt %d/%d",
                        self.name,
                        attempt,
                        self._max_retries,
                    )
                else:
                    raise  # 4xx errors are not retried

            if attempt < self._max_retries:
                time.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        raise UpstreamAPIError(
            f"{self.name} request failed after {self._max_retries} attempts: {last_error}"
        )

    def close(self) -> None:
        self._client.close()
