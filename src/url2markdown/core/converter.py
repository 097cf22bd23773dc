"""Main Url2Markdown class: fetch, extract, convert, compose."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from datetime import datetime
from types import TracebackType
from typing import Any, Callable, Union

from pydantic import ValidationError as PydanticValidationError

from ..conversion.extractor import ReadabilityExtractor
from ..conversion.frontmatter import FrontmatterBuilder
from ..conversion.protocols import ContentExtractor
from ..conversion.rules import Rule
from ..exceptions import Url2MarkdownError, ValidationError
from ..http import AsyncHttpClient, HttpClient
from ..models.config import ConversionRequest
from ..models.events import BatchStats, ConversionEvent, EventType
from ..models.result import ConversionResult, ErrorResult, ItemResult
from ..pipeline.base import ConversionPipeline, EventEmitter, PageContext
from ..pipeline.steps import ConvertStep, ExtractStep, FetchStep, FrontmatterStep, ValidateStep

logger = logging.getLogger(__name__)

RequestLike = Union[ConversionRequest, str]


def build_request(request: RequestLike, **options: Any) -> ConversionRequest:
    """
    Coerce a URL or request plus option overrides into a ConversionRequest.

    Raises:
        ValidationError: If an option is unknown or has an invalid value
    """
    try:
        if isinstance(request, ConversionRequest):
            if not options:
                return request
            data = request.model_dump(exclude_none=True)
            data.update(options)
            return ConversionRequest.model_validate(data)
        return ConversionRequest.model_validate({"url": request, **options})
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'request'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid options: {problems}") from e


class Url2Markdown:
    """
    Primary API: convert URLs to Markdown.

    Owns the HTTP session for its lifetime; ``convert`` calls on one
    instance may run concurrently.

    Example:
        async with Url2Markdown() as converter:
            result = await converter.convert("https://example.com/post", includeLinks=False)
            print(result.markdown)

            results = await converter.run(
                ["https://example.com/a", "https://example.com/b"],
                continue_on_fail=True,
            )
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        *,
        extractor: ContentExtractor | None = None,
        rules: Iterable[Rule] | None = None,
        user_agent: str | None = None,
        proxy: str | None = None,
        max_content_size: int = AsyncHttpClient.MAX_CONTENT_SIZE,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the converter.

        Args:
            http_client: Client to fetch with; a managed AsyncHttpClient is
                         created on entry when omitted
            extractor: Content extractor (ReadabilityExtractor by default)
            rules: Extra conversion rules, taking precedence over defaults
            user_agent: Override the browser-like default User-Agent
            proxy: Proxy URL for the managed client
            max_content_size: Response size cap for the managed client
            clock: Timestamp source for frontmatter dates
        """
        self._external_client = http_client
        self._http_client: HttpClient | None = http_client
        self._owned_client: AsyncHttpClient | None = None
        self._extractor = extractor or ReadabilityExtractor()
        self._rules = list(rules or [])
        self._user_agent = user_agent
        self._proxy = proxy
        self._max_content_size = max_content_size
        self._clock = clock
        self._pipeline: ConversionPipeline | None = None
        self._stats = BatchStats()

    @property
    def stats(self) -> BatchStats:
        """Statistics of the most recent ``run``."""
        return self._stats

    async def __aenter__(self) -> Url2Markdown:
        """Enter async context and initialize components."""
        if self._external_client is None:
            self._owned_client = AsyncHttpClient(
                max_content_size=self._max_content_size,
                user_agent=self._user_agent,
                proxy=self._proxy,
            )
            await self._owned_client.__aenter__()
            self._http_client = self._owned_client

        assert self._http_client is not None
        self._pipeline = ConversionPipeline(
            steps=[
                ValidateStep(),
                FetchStep(self._http_client),
                ExtractStep(self._extractor),
                ConvertStep(self._rules),
                FrontmatterStep(FrontmatterBuilder(), clock=self._clock),
            ]
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and cleanup resources."""
        if self._owned_client:
            await self._owned_client.__aexit__(exc_type, exc_val, exc_tb)
            self._owned_client = None
            self._http_client = None
        self._pipeline = None

    async def _execute(self, request: ConversionRequest, emit: EventEmitter | None) -> PageContext:
        if self._pipeline is None:
            raise RuntimeError("Url2Markdown not initialized. Use 'async with' context manager.")
        return await self._pipeline.execute(request, emit)

    @staticmethod
    def _to_result(ctx: PageContext) -> ConversionResult:
        article = ctx.article
        return ConversionResult(
            url=ctx.url,
            markdown=ctx.markdown or "",
            title=article.title if article else None,
            byline=article.byline if article else None,
            excerpt=article.excerpt if article else None,
            site_name=article.site_name if article else None,
            published_time=article.published_time if article else None,
        )

    async def convert(
        self,
        request: RequestLike,
        emit: EventEmitter | None = None,
        **options: Any,
    ) -> ConversionResult:
        """
        Convert one URL.

        Args:
            request: A ConversionRequest or a bare URL
            emit: Optional callback for pipeline events
            **options: Option overrides (snake_case or camelCase names)

        Returns:
            ConversionResult

        Raises:
            Url2MarkdownError: The typed error of the stage that failed
        """
        ctx = await self._execute(build_request(request, **options), emit)
        if ctx.error is not None:
            raise ctx.error
        return self._to_result(ctx)

    async def run(
        self,
        requests: Iterable[RequestLike],
        continue_on_fail: bool = False,
        emit: EventEmitter | None = None,
    ) -> list[ItemResult]:
        """
        Convert several URLs in order.

        Args:
            requests: ConversionRequests or bare URLs
            continue_on_fail: Record failures as ErrorResult and keep going;
                              otherwise the first failure is raised
            emit: Optional callback for events

        Returns:
            One ConversionResult or ErrorResult per input, in input order
        """
        items = list(requests)
        self._stats = BatchStats(items_total=len(items))
        start_time = time.monotonic()
        results: list[ItemResult] = []

        if emit:
            emit(ConversionEvent(type=EventType.STARTED, total=len(items), message=f"Converting {len(items)} URLs"))

        for index, item in enumerate(items, start=1):
            url = item.url if isinstance(item, ConversionRequest) else str(item)
            try:
                request = build_request(item)
                ctx = await self._execute(request, emit)
                error = ctx.error
            except Url2MarkdownError as e:
                ctx, error = None, e

            if error is None and ctx is not None:
                results.append(self._to_result(ctx))
                self._stats.record_success(ctx.bytes_downloaded)
            elif continue_on_fail:
                logger.warning(f"Failed to convert {url}: {error}")
                results.append(ErrorResult.from_exception(error, url=url))
                self._stats.record_failure()
            else:
                self._stats.record_failure()
                self._stats.duration_seconds = time.monotonic() - start_time
                raise error

            if emit:
                emit(ConversionEvent(type=EventType.COMPLETED, url=url, current=index, total=len(items)))

        self._stats.duration_seconds = time.monotonic() - start_time
        logger.info(f"Batch finished: {self._stats.summary()}")
        return results


async def convert_url(url: str, emit: EventEmitter | None = None, **options: Any) -> ConversionResult:
    """Convert one URL with a short-lived Url2Markdown."""
    async with Url2Markdown() as converter:
        return await converter.convert(url, emit=emit, **options)


def convert_blocking(
    url: str,
    on_event: Callable[[ConversionEvent], None] | None = None,
    **options: Any,
) -> ConversionResult:
    """
    Blocking conversion of one URL.

    Convenience wrapper for sync code that can't use async/await.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use the async Url2Markdown API instead.

    Example:
        result = convert_blocking("https://example.com/post", imageHandling="altText")
        print(result.markdown)
    """
    # Detect if we're already in an async context
    try:
        asyncio.get_running_loop()
        raise RuntimeError(
            "convert_blocking() called from async context. Use 'async with Url2Markdown()' instead."
        )
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    return asyncio.run(convert_url(url, emit=on_event, **options))
