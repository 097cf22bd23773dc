"""aiohttp client that fetches a single page the way a browser would."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

import aiohttp
from charset_normalizer import from_bytes as detect_encoding

from ..exceptions import ContentTooLargeError, FetchError, FetchTimeoutError, NetworkError
from .protocols import HttpResponse, parse_charset

logger = logging.getLogger(__name__)

# Some sites serve stripped-down or blocked pages to unknown clients
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ja,en-US;q=0.9,en;q=0.8",
}

READ_CHUNK_SIZE = 64 * 1024


def decode_body(content: bytes, content_type: str = "") -> str:
    """
    Turn a response body into text.

    The Content-Type charset is tried first, then charset-normalizer's
    guess, then UTF-8 with replacement characters.
    """
    if not content:
        return ""

    declared = parse_charset(content_type)
    if declared:
        try:
            return content.decode(declared)
        except (UnicodeDecodeError, LookupError):
            logger.debug(f"Declared charset {declared!r} does not decode the body")

    guess = detect_encoding(content).best()
    if guess is not None:
        logger.debug(f"Decoding body as {guess.encoding}")
        return str(guess)

    return content.decode("utf-8", errors="replace")


class AsyncHttpClient:
    """
    One GET per ``get()`` call, redirects followed, whole request bounded.

    The session is created on ``async with`` entry and shared by concurrent
    ``get()`` calls until exit.

    Example:
        async with AsyncHttpClient(user_agent="my-bot/1.0") as client:
            page = await client.get("https://example.com/post", timeout=10)
            print(page.url, page.size)
    """

    MAX_CONTENT_SIZE = 50 * 1024 * 1024  # 50 MB

    def __init__(
        self,
        max_content_size: int = MAX_CONTENT_SIZE,
        user_agent: str | None = None,
        proxy: str | None = None,
        default_timeout: float = 30.0,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        """
        Args:
            max_content_size: Largest body accepted, in bytes
            user_agent: Replaces the browser User-Agent
            proxy: HTTP proxy URL
            default_timeout: Seconds allowed when ``get()`` gets no timeout
            extra_headers: Sent on every request after the defaults
        """
        self._max_content_size = max_content_size
        self._proxy = proxy
        self._default_timeout = default_timeout
        self._headers = {**DEFAULT_HEADERS, **(extra_headers or {})}
        if user_agent:
            self._headers["User-Agent"] = user_agent
        self._session: aiohttp.ClientSession | None = None

    @property
    def headers(self) -> dict[str, str]:
        """Copy of the headers sent with every request."""
        return dict(self._headers)

    async def __aenter__(self) -> AsyncHttpClient:
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=100, limit_per_host=10, ttl_dns_cache=300),
            headers=self._headers,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._session is not None:
            await self._session.close()
        self._session = None

    def _check_declared_size(self, response: aiohttp.ClientResponse, url: str) -> None:
        declared = response.content_length
        if declared is not None and declared > self._max_content_size:
            logger.warning(f"{url} declares {declared} bytes, over the {self._max_content_size} byte limit")
            raise ContentTooLargeError(self._max_content_size, url=url, status_code=response.status)

    async def _read_limited(self, response: aiohttp.ClientResponse, url: str) -> bytes:
        """Read the body, stopping as soon as it passes the size limit."""
        self._check_declared_size(response, url)
        body = bytearray()
        async for chunk in response.content.iter_chunked(READ_CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > self._max_content_size:
                raise ContentTooLargeError(self._max_content_size, url=url, status_code=response.status)
        return bytes(body)

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Fetch ``url``.

        Args:
            url: Page to fetch
            timeout: Seconds for the whole request, body included
            headers: Extra headers for this request only

        Returns:
            HttpResponse whose ``url`` is the post-redirect location

        Raises:
            FetchError: Non-2xx status, or ContentTooLargeError for big bodies
            FetchTimeoutError: ``timeout`` elapsed (carries the configured value)
            NetworkError: DNS, connection or protocol failure
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        seconds = timeout or self._default_timeout
        try:
            async with self._session.get(
                url,
                headers=headers,
                proxy=self._proxy,
                allow_redirects=True,
                timeout=aiohttp.ClientTimeout(total=seconds),
            ) as response:
                if response.status < 200 or response.status >= 300:
                    logger.debug(f"{url} answered {response.status} {response.reason}")
                    raise FetchError(response.status, response.reason, url=url)

                body = await self._read_limited(response, url)
                content_type = response.headers.get("Content-Type", "")
                return HttpResponse(
                    status_code=response.status,
                    content=body,
                    text=decode_body(body, content_type),
                    content_type=content_type,
                    headers=dict(response.headers),
                    url=str(response.url),
                )

        # aiohttp's timeout errors are also ClientErrors; check them first
        except asyncio.TimeoutError as e:
            logger.error(f"Timed out fetching {url} after {seconds}s")
            raise FetchTimeoutError(seconds, url=url) from e

        except (aiohttp.ClientError, OSError) as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise NetworkError(f"Network error while fetching {url}: {e}", url=url) from e
