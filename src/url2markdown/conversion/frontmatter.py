"""YAML frontmatter for converted articles."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from ..models.article import ExtractedArticle


def _quote(value: str) -> str:
    """Double-quote a scalar on one line, escaping backslashes and quotes."""
    single_line = re.sub(r"\s*[\r\n]+\s*", " ", value)
    escaped = single_line.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class FrontmatterBuilder:
    """
    Builds the YAML block prepended to converted Markdown.

    Only fields the article actually carries are written; ``url`` is
    always present. Every value is a double-quoted scalar.

    Example:
        builder = FrontmatterBuilder()
        block = builder.build(article, url="https://example.com/post")
        markdown = builder.compose(block, body)
    """

    def fields(
        self,
        article: Optional[ExtractedArticle],
        url: str,
        generated_at: Optional[datetime] = None,
    ) -> dict[str, str]:
        """Collect the frontmatter fields in output order."""
        generated_at = generated_at or datetime.now(timezone.utc)
        values: dict[str, Optional[str]] = {
            "title": article.title if article else None,
            "url": url,
            "author": article.byline if article else None,
            "site": article.site_name if article else None,
            "excerpt": article.excerpt if article else None,
            "date": generated_at.isoformat(),
        }
        if values["excerpt"]:
            values["excerpt"] = re.sub(r"\s*[\r\n]+\s*", " ", values["excerpt"]).strip()

        return {key: value for key, value in values.items() if key == "url" or value}

    def build(
        self,
        article: Optional[ExtractedArticle],
        url: str,
        generated_at: Optional[datetime] = None,
    ) -> str:
        """
        Build the frontmatter block.

        Args:
            article: Extracted article supplying title, byline, excerpt, site name
            url: Resolved URL of the page
            generated_at: Timestamp for the ``date`` field (defaults to now, UTC)

        Returns:
            YAML block delimited by ``---`` lines, without a trailing newline
        """
        lines = ["---"]
        for key, value in self.fields(article, url, generated_at).items():
            lines.append(f"{key}: {_quote(value)}")
        lines.append("---")
        return "\n".join(lines)

    @staticmethod
    def compose(frontmatter: str, body: str) -> str:
        """Join a frontmatter block and a Markdown body with one blank line."""
        return frontmatter.rstrip("\n") + "\n\n" + body.lstrip("\n")
