"""Result records returned for each converted URL."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from ..exceptions import Url2MarkdownError


@dataclass(frozen=True)
class ConversionResult:
    """
    Successful conversion of one URL.

    ``to_dict()`` produces the JSON shape consumed by downstream workflow
    steps: url, title, byline, excerpt, siteName, publishedTime, markdown,
    contentLength. Metadata keys are left out when the page had no value.
    """

    url: str
    markdown: str
    title: Optional[str] = None
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    site_name: Optional[str] = None
    published_time: Optional[str] = None

    @property
    def content_length(self) -> int:
        return len(self.markdown)

    @property
    def is_error(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url}
        if self.title is not None:
            data["title"] = self.title
        if self.byline is not None:
            data["byline"] = self.byline
        if self.excerpt is not None:
            data["excerpt"] = self.excerpt
        if self.site_name is not None:
            data["siteName"] = self.site_name
        if self.published_time is not None:
            data["publishedTime"] = self.published_time
        data["markdown"] = self.markdown
        data["contentLength"] = self.content_length
        return data


@dataclass(frozen=True)
class ErrorResult:
    """Per-item failure recorded when the caller opted into continue-on-fail."""

    error: str
    kind: str = "error"
    url: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: BaseException, url: Optional[str] = None) -> "ErrorResult":
        """Build an error record from any exception."""
        if isinstance(exc, Url2MarkdownError):
            return cls(error=exc.message, kind=exc.kind, url=exc.url or url)
        return cls(error=str(exc) or type(exc).__name__, url=url)

    @property
    def is_error(self) -> bool:
        return True

    def to_dict(self, verbose: bool = False) -> dict[str, Any]:
        """Serialize as ``{"error": message}``; verbose adds kind and url."""
        data: dict[str, Any] = {"error": self.error}
        if verbose:
            data["kind"] = self.kind
            if self.url:
                data["url"] = self.url
        return data


ItemResult = Union[ConversionResult, ErrorResult]
