"""FetchStep - HTTP fetching pipeline step."""

import logging
from typing import Optional

from ...exceptions import Url2MarkdownError
from ...http.protocols import HttpClient
from ...models.events import ConversionEvent, EventType
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class FetchStep:
    """
    Pipeline step that fetches page content via HTTP.

    Performs exactly one GET (redirects followed) bounded by the request's
    timeout.

    Populates:
        ctx.html: Decoded page markup
        ctx.final_url: URL after redirects
        ctx.status_code: HTTP status code
        ctx.content_type: Content-Type header value
        ctx.bytes_downloaded: Size of downloaded content

    Raises:
        FetchError: Non-2xx status or oversized body
        FetchTimeoutError: The timeout elapsed
        NetworkError: Transport failure

    Example:
        async with AsyncHttpClient() as client:
            ctx = await FetchStep(client).execute(ctx)
    """

    name = "fetch"

    def __init__(self, http_client: HttpClient) -> None:
        """
        Initialize the fetch step.

        Args:
            http_client: HTTP client implementing HttpClient protocol
        """
        self._client = http_client

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute the fetch step.

        Args:
            ctx: Page context with URL to fetch
            emit: Optional callback to emit events

        Returns:
            PageContext with html, final_url, status_code, content_type populated
        """
        url = ctx.request.url

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.FETCH_STARTED,
                    url=url,
                    message=f"Fetching {url}",
                )
            )

        try:
            response = await self._client.get(url, timeout=ctx.config.timeout)
        except Url2MarkdownError as e:
            logger.error(f"Fetch error for {url}: {e}")

            if emit:
                emit(
                    ConversionEvent(
                        type=EventType.FETCH_FAILED,
                        url=url,
                        error=str(e),
                        error_kind=e.kind,
                        status_code=getattr(e, "status_code", None),
                        message=f"Fetch failed: {e}",
                    )
                )

            # Re-raise to let pipeline handle it
            raise

        ctx.final_url = response.url or url
        ctx.status_code = response.status_code
        ctx.content_type = response.content_type
        ctx.bytes_downloaded = response.size
        ctx.html = response.text

        if ctx.final_url != url:
            logger.debug(f"Redirected {url} -> {ctx.final_url}")
        logger.debug(f"Fetched {url}: {response.size} bytes")

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.FETCH_COMPLETED,
                    url=ctx.final_url,
                    status_code=response.status_code,
                    bytes_downloaded=response.size,
                    content_type=response.content_type,
                    message=f"Fetched {response.size} bytes",
                )
            )

        return ctx
