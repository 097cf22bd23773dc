"""FrontmatterStep - prepends YAML frontmatter when enabled."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ...conversion.frontmatter import FrontmatterBuilder
from ...models.events import ConversionEvent, EventType
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class FrontmatterStep:
    """
    Pipeline step that prepends frontmatter to ctx.markdown.

    Does nothing unless the request enabled ``include_frontmatter``.

    Args:
        builder: Frontmatter builder (uses default if None)
        clock: Returns the generation timestamp; injectable for tests
    """

    name = "frontmatter"

    def __init__(
        self,
        builder: Optional[FrontmatterBuilder] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._builder = builder or FrontmatterBuilder()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        if not ctx.config.include_frontmatter or ctx.markdown is None:
            return ctx

        block = self._builder.build(ctx.article, ctx.url, generated_at=self._clock())
        ctx.markdown = self._builder.compose(block, ctx.markdown)
        logger.debug(f"Added frontmatter to {ctx.url}")

        if emit:
            emit(ConversionEvent(type=EventType.FRONTMATTER_ADDED, url=ctx.url))
        return ctx
