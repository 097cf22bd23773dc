"""url2markdown configuration, record and event models."""

from .article import ExtractedArticle
from .config import (
    BatchConfig,
    CodeBlockStyle,
    ConversionConfig,
    ConversionOptions,
    ConversionRequest,
    HeadingStyle,
    ImageHandling,
)
from .events import BatchStats, ConversionEvent, EventType
from .result import ConversionResult, ErrorResult, ItemResult

__all__ = [
    # Config
    "BatchConfig",
    "CodeBlockStyle",
    "ConversionConfig",
    "ConversionOptions",
    "ConversionRequest",
    "HeadingStyle",
    "ImageHandling",
    # Records
    "ConversionResult",
    "ErrorResult",
    "ExtractedArticle",
    "ItemResult",
    # Events
    "BatchStats",
    "ConversionEvent",
    "EventType",
]
