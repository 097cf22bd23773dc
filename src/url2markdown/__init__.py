"""
url2markdown - Extract the readable article from a web page as Markdown.

Usage:
    from url2markdown import Url2Markdown, ConversionRequest

    async with Url2Markdown() as converter:
        result = await converter.convert(
            ConversionRequest(url="https://example.com/post", includeFrontmatter=True)
        )
        print(result.markdown)
"""

__version__ = "1.0.0"

from .conversion import FrontmatterBuilder, HtmlToMarkdown, ReadabilityExtractor, Rule, RuleTable
from .core.converter import Url2Markdown, convert_blocking, convert_url
from .exceptions import (
    ContentTooLargeError,
    ConversionError,
    ExtractionError,
    FetchError,
    FetchTimeoutError,
    NetworkError,
    Url2MarkdownError,
    ValidationError,
)
from .models.article import ExtractedArticle
from .models.config import (
    BatchConfig,
    CodeBlockStyle,
    ConversionConfig,
    ConversionOptions,
    ConversionRequest,
    HeadingStyle,
    ImageHandling,
)
from .models.events import BatchStats, ConversionEvent, EventType
from .models.result import ConversionResult, ErrorResult

__all__ = [
    "__version__",
    # Core
    "Url2Markdown",
    "convert_url",
    "convert_blocking",
    # Conversion
    "ReadabilityExtractor",
    "HtmlToMarkdown",
    "FrontmatterBuilder",
    "Rule",
    "RuleTable",
    # Config
    "BatchConfig",
    "ConversionConfig",
    "ConversionOptions",
    "ConversionRequest",
    "HeadingStyle",
    "CodeBlockStyle",
    "ImageHandling",
    # Results
    "ExtractedArticle",
    "ConversionResult",
    "ErrorResult",
    # Events
    "EventType",
    "ConversionEvent",
    "BatchStats",
    # Errors
    "Url2MarkdownError",
    "ValidationError",
    "NetworkError",
    "FetchError",
    "ContentTooLargeError",
    "FetchTimeoutError",
    "ExtractionError",
    "ConversionError",
]
