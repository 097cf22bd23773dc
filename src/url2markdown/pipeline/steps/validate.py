"""ValidateStep - request validation pipeline step."""

import logging
from typing import Optional
from urllib.parse import urlparse

from ...exceptions import ValidationError
from ...models.events import ConversionEvent, EventType
from ..base import EventEmitter, PageContext

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})


class ValidateStep:
    """
    Pipeline step that rejects unusable URLs before any network access.

    Raises ValidationError if:
        - The URL is missing or blank
        - The scheme is not in the allowed set (http and https by default)
        - The URL has no host

    Example:
        ctx = await ValidateStep().execute(ctx)
    """

    name = "validate"

    def __init__(self, allowed_schemes: frozenset[str] = ALLOWED_SCHEMES) -> None:
        self._allowed_schemes = allowed_schemes

    async def execute(
        self,
        ctx: PageContext,
        emit: Optional[EventEmitter] = None,
    ) -> PageContext:
        url = ctx.request.url
        if not url:
            raise ValidationError("URL is required")

        parsed = urlparse(url)
        if parsed.scheme.lower() not in self._allowed_schemes:
            scheme = parsed.scheme or "none"
            raise ValidationError(f"Unsupported URL scheme '{scheme}': {url}", url=url)
        if not parsed.netloc:
            raise ValidationError(f"URL has no host: {url}", url=url)

        logger.debug(f"Validated {url}")
        if emit:
            emit(ConversionEvent(type=EventType.VALIDATED, url=url))
        return ctx
