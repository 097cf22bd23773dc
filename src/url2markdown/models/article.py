"""Extracted article record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bs4 import Tag


@dataclass(frozen=True)
class ExtractedArticle:
    """
    The readable part of a page, as isolated by the content extractor.

    String fields are optional; ``None`` means the page did not provide the
    value, which is distinct from an empty string.

    Attributes:
        content: Article body subtree (the converter's input)
        url: Base URL used to resolve relative links
        title: Article title
        byline: Author line
        excerpt: Short description or first meaningful paragraph
        site_name: Name of the publishing site
        lang: Document language (from <html lang>)
        published_time: Publication time as found in the page metadata
    """

    content: Tag
    url: str
    title: Optional[str] = None
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    site_name: Optional[str] = None
    lang: Optional[str] = None
    published_time: Optional[str] = None

    @property
    def text_content(self) -> str:
        """Plain text of the article body, whitespace collapsed."""
        return " ".join(self.content.get_text().split())

    @property
    def length(self) -> int:
        """Length of the article's plain text."""
        return len(self.text_content)
