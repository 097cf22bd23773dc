"""HTTP client for url2markdown."""

from .client import DEFAULT_HEADERS, AsyncHttpClient
from .protocols import HttpClient, HttpResponse

__all__ = [
    "AsyncHttpClient",
    "DEFAULT_HEADERS",
    "HttpClient",
    "HttpResponse",
]
