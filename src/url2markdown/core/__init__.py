"""Core orchestration for url2markdown."""

from .converter import Url2Markdown, build_request, convert_blocking, convert_url

__all__ = ["Url2Markdown", "build_request", "convert_blocking", "convert_url"]
