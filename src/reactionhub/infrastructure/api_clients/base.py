"""
Async HTTP client for remote content services.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

logger = logging.getLogger(__name__)

_RETRYABLE = frozenset({429, 500, 502, 503, 504})


class ContentServiceError(Exception):
    def __init__(self, message: str, *, status: int = 0):
        super().__init__(message)
        self.status = status


class APIClient:
    """aiohttp session wrapper with exponential backoff on 429/5xx, timeouts and connection errors."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        max_retries: int = 2,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = ClientTimeout(total=timeout)
        self.max_retries = max_retries
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"User-Agent": "ReactionHub/0.1"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)
        return self._session

    @staticmethod
    def _backoff(attempt: int, retry_after: Optional[str] = None) -> float:
        if retry_after:
            try:
                return min(float(retry_after), 30.0)
            except (TypeError, ValueError):
                pass
        delay = 0.5 * (2 ** attempt)
        jitter = delay * 0.25 * (2 * random.random() - 1)
        return max(0.1, delay + jitter)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Any] = None,
    ) -> Any:
        """
        Send one request. Returns the decoded JSON body, or None on 404/204.

        Raises ContentServiceError for non-retryable statuses and once retries are exhausted.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        last_status = 0

        for attempt in range(self.max_retries + 1):
            session = await self._get_session()
            try:
                async with session.request(method, url, params=params, json=json_data) as response:
                    last_status = response.status
                    if response.status in (200, 201):
                        return await response.json()
                    if response.status in (204, 404):
                        await response.read()
                        return None
                    if response.status in _RETRYABLE and attempt < self.max_retries:
                        retry_after = response.headers.get("Retry-After")
                        await response.read()
                        delay = self._backoff(attempt, retry_after)
                        logger.warning(
                            "HTTP %s for %s %s, retry %d/%d in %.1fs",
                            response.status, method, url, attempt + 1, self.max_retries, delay,
                        )
                        await asyncio.sleep(delay)
                        continue
                    text = await response.text()
                    raise ContentServiceError(
                        f"{method} {url} failed with {response.status}: {text[:200]}",
                        status=response.status,
                    )
            except (asyncio.TimeoutError, aiohttp.ClientConnectionError) as exc:
                if attempt >= self.max_retries:
                    logger.error(
                        "Request failed after %d attempts: %s (%s)",
                        attempt + 1, url, type(exc).__name__,
                    )
                    raise
                delay = self._backoff(attempt)
                logger.warning(
                    "%s for %s %s, retry %d/%d in %.1fs",
                    type(exc).__name__, method, url, attempt + 1, self.max_retries, delay,
                )
                await asyncio.sleep(delay)

        raise ContentServiceError(
            f"HTTP {last_status} after {self.max_retries + 1} attempts: {url}", status=last_status
        )

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json_data: Optional[Any] = None) -> Any:
        return await self.request("POST", endpoint, json_data=json_data)

    async def put(self, endpoint: str, json_data: Optional[Any] = None) -> Any:
        return await self.request("PUT", endpoint, json_data=json_data)

    async def patch(self, endpoint: str, json_data: Optional[Any] = None) -> Any:
        return await self.request("PATCH", endpoint, json_data=json_data)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
