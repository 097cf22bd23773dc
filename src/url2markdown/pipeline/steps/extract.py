"""ExtractStep - article extraction pipeline step."""

import logging
from typing import Optional

from ...conversion.extractor import ReadabilityExtractor
from ...conversion.protocols import ContentExtractor
from ...exceptions import ExtractionError
from ...models.events import ConversionEvent, EventType
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class ExtractStep:
    """
    Pipeline step that isolates the readable article.

    Reads ctx.html, writes ctx.article. Raises ExtractionError when the
    page has no readable content.
    """

    name = "extract"

    def __init__(self, extractor: Optional[ContentExtractor] = None) -> None:
        self._extractor = extractor or ReadabilityExtractor()

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        if ctx.html is None:
            raise ExtractionError("No HTML content to extract", url=ctx.url)

        article = self._extractor.extract(ctx.html, ctx.url)
        ctx.article = article

        if not article.title:
            logger.warning(f"No title found for {ctx.url}")
        logger.debug(f"Extracted {article.length} characters of text from {ctx.url}")

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.ARTICLE_EXTRACTED,
                    url=ctx.url,
                    content_length=article.length,
                    message=f"Extracted '{article.title or ctx.url}'",
                )
            )
        return ctx
