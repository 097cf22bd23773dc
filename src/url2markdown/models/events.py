"""Progress events and batch statistics."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """What happened; per-URL stages are emitted in pipeline order."""

    # Batch lifecycle
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"

    # Per-URL stages
    VALIDATED = "validated"
    FETCH_STARTED = "fetch_started"
    FETCH_COMPLETED = "fetch_completed"
    FETCH_FAILED = "fetch_failed"
    ARTICLE_EXTRACTED = "article_extracted"
    PAGE_CONVERTED = "page_converted"
    FRONTMATTER_ADDED = "frontmatter_added"


@dataclass
class ConversionEvent:
    """
    One progress notification passed to an ``emit`` callback.

    Only the fields relevant to ``type`` are set; FETCH_COMPLETED carries
    status, size and content type, PAGE_CONVERTED the Markdown length,
    FAILED the error text and kind, COMPLETED the batch position.

    Example:
        def on_event(event: ConversionEvent) -> None:
            if event.type == EventType.FAILED:
                print(f"{event.url}: {event.error}")

        result = await converter.convert(url, emit=on_event)
    """

    type: EventType
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    # Position within a batch
    current: Optional[int] = None
    total: Optional[int] = None

    status_code: Optional[int] = None
    bytes_downloaded: Optional[int] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None


@dataclass
class BatchStats:
    """Counters for one ``Url2Markdown.run`` call."""

    items_total: int = 0
    items_converted: int = 0
    items_failed: int = 0
    bytes_downloaded: int = 0
    duration_seconds: float = 0.0

    def record_success(self, bytes_downloaded: int = 0) -> None:
        self.items_converted += 1
        self.bytes_downloaded += bytes_downloaded

    def record_failure(self) -> None:
        self.items_failed += 1

    @property
    def all_converted(self) -> bool:
        return self.items_failed == 0

    def summary(self) -> str:
        """One-line human summary, e.g. ``2/3 converted (1 failed) in 0.4s``."""
        return (
            f"{self.items_converted}/{self.items_total} converted"
            f" ({self.items_failed} failed) in {self.duration_seconds:.1f}s"
        )
