"""Base classes for the conversion pipeline."""

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from ..exceptions import Url2MarkdownError
from ..models.article import ExtractedArticle
from ..models.config import ConversionConfig, ConversionRequest
from ..models.events import ConversionEvent, EventType

# Type alias for event emitter function
EventEmitter = Callable[[ConversionEvent], None]


@dataclass
class PageContext:
    """
    Context object passed through pipeline steps.

    Contains all state for converting a single URL, accumulated as it
    moves through the pipeline.

    Attributes:
        request: The conversion request being processed
        config: Converter configuration derived from the request
        final_url: URL after redirects (set by FetchStep)
        html: Decoded page markup
        article: Extracted article (set by ExtractStep)
        markdown: Converted Markdown, with frontmatter when enabled
        error: The typed error that stopped the pipeline, if any
    """

    request: ConversionRequest
    config: ConversionConfig = field(default_factory=ConversionConfig)

    # Content (accumulated through pipeline)
    final_url: Optional[str] = None
    html: Optional[Union[str, bytes]] = None
    article: Optional[ExtractedArticle] = None
    markdown: Optional[str] = None

    # Additional data from fetch
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    bytes_downloaded: int = 0

    # Status
    error: Optional[Url2MarkdownError] = None

    @property
    def url(self) -> str:
        """The most specific URL known so far."""
        return self.final_url or self.request.url


@runtime_checkable
class ConversionStep(Protocol):
    """
    Protocol for pipeline steps.

    Each step receives a PageContext, processes it, and returns the
    (possibly modified) context.

    Error Handling Contract:
    - Raise a Url2MarkdownError subclass for any failure
    - The pipeline catches it, stores it in ctx.error and stops

    Example implementation:
        class ValidateStep:
            name = "validate"

            async def execute(
                self,
                ctx: PageContext,
                emit: Optional[EventEmitter] = None
            ) -> PageContext:
                if not ctx.request.url:
                    raise ValidationError("URL is required")
                return ctx
    """

    name: str

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute this pipeline step.

        Args:
            ctx: The page context with accumulated state
            emit: Optional callback to emit events

        Returns:
            The (possibly modified) page context
        """
        ...


@dataclass
class ConversionPipeline:
    """
    Pipeline for converting a single URL through multiple steps.

    Steps are executed in order. If a step raises a Url2MarkdownError,
    the error is captured in ctx.error and processing stops. Any other
    exception is a bug and propagates.

    Example:
        pipeline = ConversionPipeline(steps=[
            ValidateStep(),
            FetchStep(http_client),
            ExtractStep(),
            ConvertStep(),
            FrontmatterStep(),
        ])

        ctx = await pipeline.execute(request, emit=log_event)
        if ctx.error:
            logger.error(f"Failed: {ctx.error}")
        else:
            print(ctx.markdown)
    """

    steps: list[ConversionStep]

    async def execute(
        self,
        request: ConversionRequest,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        """
        Execute the pipeline for a request.

        Args:
            request: The URL and options to process
            emit: Optional callback for emitting events

        Returns:
            PageContext with final state (check error for status)
        """
        ctx = PageContext(request=request, config=request.to_conversion_config())

        for step in self.steps:
            try:
                ctx = await step.execute(ctx, emit)
            except Url2MarkdownError as e:
                if e.url is None:
                    e.url = ctx.url or None
                ctx.error = e

                if emit:
                    emit(
                        ConversionEvent(
                            type=EventType.FAILED,
                            url=ctx.url,
                            error=f"{step.name}: {e.message}",
                            error_kind=e.kind,
                        )
                    )
                break

        return ctx

    def add_step(self, step: ConversionStep) -> "ConversionPipeline":
        """
        Add a step to the pipeline (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self
