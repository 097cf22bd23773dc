"""Pipeline step for article to Markdown conversion."""

import logging
from collections.abc import Iterable
from typing import Optional

from ...conversion.markdown import HtmlToMarkdown
from ...conversion.rules import Rule, RuleTable
from ...exceptions import ConversionError
from ...models.events import ConversionEvent, EventType
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)


class ConvertStep:
    """
    Pipeline step that renders the extracted article as Markdown.

    A converter is built per page from the request's configuration, so
    one step instance serves requests with different options. Extra rules
    are registered as overrides on every converter.

    Example:
        step = ConvertStep(rules=[Rule("strikeAsText", "del", lambda c, n, o: c)])
        ctx = await step.execute(ctx, emit=callback)
        # ctx.markdown now contains the converted content
    """

    name = "convert"

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        """
        Initialize the convert step.

        Args:
            rules: Override rules added on top of the configured defaults
        """
        self._rules = list(rules or [])

    def converter_for(self, ctx: PageContext) -> HtmlToMarkdown:
        table = RuleTable.for_config(ctx.config)
        for rule in self._rules:
            table.add(rule)
        return HtmlToMarkdown(ctx.config, rules=table)

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Convert ctx.article to Markdown.

        Args:
            ctx: Page context with an extracted article
            emit: Optional event emitter

        Returns:
            Updated context with markdown content
        """
        if ctx.article is None:
            raise ConversionError("No article to convert", url=ctx.url)

        markdown = self.converter_for(ctx).convert(ctx.article)
        ctx.markdown = markdown

        if emit:
            emit(
                ConversionEvent(
                    type=EventType.PAGE_CONVERTED,
                    url=ctx.url,
                    content_length=len(markdown),
                    message=f"Converted to {len(markdown)} characters of Markdown",
                )
            )

        logger.debug(f"Converted {ctx.url} to {len(markdown)} characters of Markdown")
        return ctx
