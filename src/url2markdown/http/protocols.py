"""HTTP response record and the client protocol the fetch step depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


def parse_charset(content_type: str) -> Optional[str]:
    """Return the ``charset=`` parameter of a Content-Type value, if any."""
    for part in content_type.split(";")[1:]:
        name, _, value = part.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'")
    return None


@dataclass(frozen=True)
class HttpResponse:
    """
    Result of a single GET.

    ``url`` is where the request ended up after redirects; it becomes the
    base URL for relative links and the URL reported in results.
    """

    status_code: int
    content: bytes
    text: str
    content_type: str
    headers: dict[str, str]
    url: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def charset(self) -> Optional[str]:
        return parse_charset(self.content_type)


class HttpClient(Protocol):
    """Anything that can fetch a page; AsyncHttpClient in production, mocks in tests."""

    async def get(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        headers: Optional[dict[str, str]] = None,
    ) -> HttpResponse:
        """
        GET ``url`` once, following redirects, within ``timeout`` seconds.

        Raises:
            FetchError: On a non-2xx status
            FetchTimeoutError: When the request exceeds ``timeout``
            NetworkError: On transport failures
        """
        ...
