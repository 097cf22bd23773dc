"""Content conversion for url2markdown (extraction, Markdown, frontmatter)."""

from .extractor import ReadabilityExtractor
from .frontmatter import FrontmatterBuilder
from .markdown import HtmlToMarkdown, escape_markdown
from .metadata import PageMetadata, extract_metadata
from .protocols import ContentExtractor, MarkdownConverter
from .rules import DEFAULT_RULES, Rule, RuleTable

__all__ = [
    # Protocols
    "ContentExtractor",
    "MarkdownConverter",
    # Implementations
    "ReadabilityExtractor",
    "HtmlToMarkdown",
    "FrontmatterBuilder",
    # Rules
    "DEFAULT_RULES",
    "Rule",
    "RuleTable",
    # Helpers
    "PageMetadata",
    "escape_markdown",
    "extract_metadata",
]
