"""Shared HTTP plumbing for provider drivers."""

from typing import Any

import httpx
import structlog

from folio_core.errors import ProviderError

logger = structlog.get_logger(__name__)


class HttpDriver:
    """
    Base class for drivers talking to a provider over HTTP.

    The ``httpx.AsyncClient`` is created lazily and reused; use the driver
    as an async context manager or call :meth:`close` when done.
    """

    provider: str = "unknown"

    def __init__(self, base_url: str, timeout: float, headers: dict[str, str] | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(service=f"{self.provider}_driver")

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=httpx.Timeout(self.timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _post_json(
        self,
        path: str,
        body: dict[str, Any],
        *,
        params: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """
        POST ``body`` and decode the JSON response.

        Raises:
            ProviderError: on transport failure, non-2xx status or a non-JSON body
        """
        client = await self._ensure_client()
        try:
            response = await client.post(
                path,
                json=body,
                params=params,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.provider} request failed: {e.__class__.__name__}: {e}",
                provider=self.provider,
            ) from e

        if response.status_code >= 400:
            raise ProviderError(
                f"{self.provider} API error ({response.status_code}): {response.text[:500]}",
                provider=self.provider,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.provider} returned a non-JSON response",
                provider=self.provider,
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.provider} returned an unexpected payload",
                provider=self.provider,
                status_code=response.status_code,
            )
        return data
