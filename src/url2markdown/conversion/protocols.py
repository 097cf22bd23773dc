"""Protocol definitions for content conversion."""

from typing import Protocol, Union

from bs4 import Tag

from ..models.article import ExtractedArticle


class ContentExtractor(Protocol):
    """
    Protocol for isolating the readable article from a page.

    Implementations remove navigation, sidebars, footers, ads and scripts
    and return the article subtree with its metadata.
    """

    def extract(self, html: Union[str, bytes], url: str) -> ExtractedArticle:
        """
        Extract the article from HTML.

        Args:
            html: Raw page markup
            url: Final URL of the page (for relative link resolution)

        Returns:
            ExtractedArticle

        Raises:
            ExtractionError: If no readable content is found
        """
        ...


class MarkdownConverter(Protocol):
    """Protocol for rendering an article subtree as Markdown."""

    def convert(self, content: Union[Tag, ExtractedArticle, str]) -> str:
        """
        Convert content to Markdown.

        Raises:
            ConversionError: If the tree cannot be rendered
        """
        ...
