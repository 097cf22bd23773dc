"""Error taxonomy for url2markdown.

Every failure raised by a pipeline stage derives from Url2MarkdownError and
carries a human-readable message plus a machine-distinguishable ``kind``.
"""

from __future__ import annotations

from typing import Any, Optional


class Url2MarkdownError(Exception):
    """Base class for all url2markdown errors."""

    kind = "error"

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for JSON output."""
        data: dict[str, Any] = {"error": self.message, "kind": self.kind}
        if self.url:
            data["url"] = self.url
        return data


class ValidationError(Url2MarkdownError):
    """The request is invalid (missing or malformed URL, bad option)."""

    kind = "validation"


class NetworkError(Url2MarkdownError):
    """Transport-level failure (DNS, refused connection, reset)."""

    kind = "network"


class FetchError(NetworkError):
    """The server answered with a non-2xx status."""

    kind = "fetch"

    def __init__(
        self,
        status_code: int,
        reason: Optional[str] = None,
        url: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason or ""
        if message is None:
            message = f"Failed to fetch URL: {status_code} {self.reason}".rstrip()
        super().__init__(message, url=url)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["statusCode"] = self.status_code
        return data


class ContentTooLargeError(FetchError):
    """The response body exceeded the configured size cap."""

    def __init__(self, limit: int, url: Optional[str] = None, status_code: int = 200) -> None:
        self.limit = limit
        super().__init__(
            status_code,
            url=url,
            message=f"Content size limit exceeded: >{limit} bytes",
        )


class FetchTimeoutError(Url2MarkdownError, TimeoutError):
    """The fetch did not complete within the configured number of seconds."""

    kind = "timeout"

    def __init__(self, timeout: float, url: Optional[str] = None) -> None:
        self.timeout = timeout
        shown = int(timeout) if float(timeout).is_integer() else timeout
        super().__init__(f"Request timed out after {shown} seconds", url=url)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timeout"] = self.timeout
        return data


class ExtractionError(Url2MarkdownError):
    """No readable article content could be isolated from the page."""

    kind = "extraction"

    def __init__(self, message: str = "No readable content found", url: Optional[str] = None) -> None:
        super().__init__(message, url=url)


class ConversionError(Url2MarkdownError):
    """The content tree could not be rendered (malformed, cyclic or too deep)."""

    kind = "conversion"
