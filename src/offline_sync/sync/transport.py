"""Transport used to replay queued requests against the remote service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol
from urllib.parse import urljoin

import aiohttp

from offline_sync.core.queued_request import RequestOptions
from offline_sync.errors import TransportFailure

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can perform one HTTP-like request.

    ``perform`` returns on success and raises ``TransportFailure`` (or any
    other exception) on failure.
    """

    async def perform(self, target: str, options: RequestOptions) -> None: ...


class HttpTransport:
    """
    aiohttp-backed transport.

    Connection errors, timeouts and 5xx responses are failures, so the
    request stays queued. Any other status counts as delivered; 4xx
    responses are logged because retrying them cannot succeed.

    Usage:
        async with HttpTransport("https://api.example.com") as transport:
            await transport.perform("/items/1", RequestOptions(method="PUT", body={...}))
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            base_url: Prefix for relative targets (e.g. "https://api.example.com")
            timeout: Total timeout per request in seconds
            headers: Headers sent with every request
        """
        self._base_url = base_url.rstrip("/") + "/" if base_url else ""
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def resolve(self, target: str) -> str:
        """Join a relative target onto the base URL; absolute targets pass through."""
        if not self._base_url or target.startswith(("http://", "https://")):
            return target
        return urljoin(self._base_url, target.lstrip("/"))

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> HttpTransport:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def perform(self, target: str, options: RequestOptions) -> None:
        """
        Send one request.

        Raises:
            TransportFailure: On connection error, timeout or 5xx status
        """
        await self.connect()
        assert self._session is not None

        url = self.resolve(target)
        kwargs: dict[str, Any] = {"headers": options.headers}
        # Queued bodies are JSON values; strings are sent verbatim
        if isinstance(options.body, str):
            kwargs["data"] = options.body
        elif options.body is not None:
            kwargs["json"] = options.body

        try:
            async with self._session.request(options.effective_method, url, **kwargs) as response:
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportFailure(
                f"{options.effective_method} {url} failed: {e}", target=target
            ) from e

        if status >= 500:
            raise TransportFailure(
                f"{options.effective_method} {url} returned {status}",
                target=target,
                status=status,
            )
        if status >= 400:
            logger.warning(
                "Remote rejected %s %s with status %d; dropping request",
                options.effective_method,
                url,
                status,
            )

    async def fetch(self, target: str, options: RequestOptions | None = None) -> Any:
        """Issue a read and return its decoded JSON body (or text)."""
        await self.connect()
        assert self._session is not None

        options = options or RequestOptions()
        url = self.resolve(target)
        try:
            async with self._session.request(
                options.effective_method, url, headers=options.headers
            ) as response:
                if response.status >= 400:
                    raise TransportFailure(
                        f"{options.effective_method} {url} returned {response.status}",
                        target=target,
                        status=response.status,
                    )
                if response.content_type == "application/json":
                    return await response.json()
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportFailure(
                f"{options.effective_method} {url} failed: {e}", target=target
            ) from e
