"""Tests for frontmatter composition."""

from datetime import datetime, timezone

import pytest
import yaml
from bs4 import BeautifulSoup
from url2markdown.conversion.frontmatter import FrontmatterBuilder
from url2markdown.models.article import ExtractedArticle

GENERATED_AT = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_article(**fields) -> ExtractedArticle:
    content = BeautifulSoup("<div><p>Body</p></div>", "html.parser").div
    return ExtractedArticle(content=content, url="https://example.com/post", **fields)


class TestFrontmatterBuilder:
    """Tests for FrontmatterBuilder."""

    @pytest.fixture
    def builder(self):
        return FrontmatterBuilder()

    def test_builds_all_fields_in_order(self, builder):
        """Test every present field is written, double-quoted, in a fixed order."""
        article = make_article(
            title="Sourdough Basics",
            byline="Jane Baker",
            site_name="Example Kitchen",
            excerpt="How to bake bread.",
        )
        block = builder.build(article, "https://example.com/post", generated_at=GENERATED_AT)
        assert block == (
            "---\n"
            'title: "Sourdough Basics"\n'
            'url: "https://example.com/post"\n'
            'author: "Jane Baker"\n'
            'site: "Example Kitchen"\n'
            'excerpt: "How to bake bread."\n'
            'date: "2024-01-02T03:04:05+00:00"\n'
            "---"
        )

    def test_omits_missing_fields(self, builder):
        """Test only url and date are written when the article has no metadata."""
        block = builder.build(make_article(), "https://example.com/post", generated_at=GENERATED_AT)
        assert block.splitlines() == [
            "---",
            'url: "https://example.com/post"',
            'date: "2024-01-02T03:04:05+00:00"',
            "---",
        ]

    def test_url_always_present_without_article(self, builder):
        """Test the url line is written even with no article at all."""
        block = builder.build(None, "https://example.com/post", generated_at=GENERATED_AT)
        assert 'url: "https://example.com/post"' in block

    def test_escapes_quotes(self, builder):
        """Test embedded double quotes are backslash-escaped."""
        article = make_article(title='Say "hello"')
        block = builder.build(article, "https://example.com", generated_at=GENERATED_AT)
        assert 'title: "Say \\"hello\\""' in block

    def test_escapes_backslashes_first(self, builder):
        """Test backslashes are escaped so the scalar stays valid."""
        article = make_article(title="C:\\temp")
        block = builder.build(article, "https://example.com", generated_at=GENERATED_AT)
        assert 'title: "C:\\\\temp"' in block

    def test_collapses_newlines_in_excerpt(self, builder):
        """Test a multi-line excerpt becomes a single line."""
        article = make_article(excerpt="Line one\nline two\r\n  line three")
        block = builder.build(article, "https://example.com", generated_at=GENERATED_AT)
        assert 'excerpt: "Line one line two line three"' in block

    def test_output_is_valid_yaml(self, builder):
        """Test the block parses back to the original values."""
        article = make_article(title='Quotes " and \\ slashes', excerpt="multi\nline", byline="Ann")
        block = builder.build(article, "https://example.com/a", generated_at=GENERATED_AT)
        data = yaml.safe_load(block.strip("-\n"))
        assert data["title"] == 'Quotes " and \\ slashes'
        assert data["excerpt"] == "multi line"
        assert data["url"] == "https://example.com/a"
        assert data["date"] == "2024-01-02T03:04:05+00:00"

    def test_compose_separates_with_one_blank_line(self, builder):
        """Test frontmatter and body are joined by exactly one blank line."""
        block = builder.build(None, "https://example.com", generated_at=GENERATED_AT)
        composed = builder.compose(block, "# Title\n\nBody")
        assert composed.startswith("---\n")
        assert "---\n\n# Title" in composed
        assert "\n\n\n" not in composed
