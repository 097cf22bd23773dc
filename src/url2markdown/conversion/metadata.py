"""Article metadata heuristics (title, byline, excerpt, site name)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import extruct
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Separators commonly placed between an article title and the site name
TITLE_SEPARATORS = re.compile(r"\s+[|\-–—\\/>»:]+\s+|\s+::\s+")

BYLINE_PATTERN = re.compile(r"byline|author|dateline|writtenby|p-author", re.IGNORECASE)

ARTICLE_TYPES = re.compile(
    r"Article|AdvertiserContentArticle|NewsArticle|AnalysisNewsArticle|AskPublicNewsArticle|"
    r"BackgroundNewsArticle|OpinionNewsArticle|ReportageNewsArticle|ReviewNewsArticle|Report|"
    r"SatiricalArticle|ScholarlyArticle|MedicalScholarlyArticle|SocialMediaPosting|BlogPosting|"
    r"LiveBlogPosting|DiscussionForumPosting|TechArticle|APIReference|WebPage"
)

STRUCTURED_SYNTAXES = ["json-ld", "opengraph"]

MAX_BYLINE_LENGTH = 100


@dataclass
class PageMetadata:
    """Metadata read from the document head and structured data."""

    title: Optional[str] = None
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    site_name: Optional[str] = None
    published_time: Optional[str] = None
    lang: Optional[str] = None


@dataclass
class StructuredData:
    """
    The parts of a page's structured data that describe the article.

    Attributes:
        article: First JSON-LD item with an article-like @type
        opengraph: Open Graph properties, first non-empty value per key
    """

    article: Optional[dict[str, Any]] = None
    opengraph: dict[str, str] = field(default_factory=dict)


def normalize_text(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace; returns None for None input."""
    if text is None:
        return None
    return re.sub(r"\s+", " ", text).strip()


def _meta_content(soup: BeautifulSoup, *keys: str) -> Optional[str]:
    """Return the first non-empty <meta> content matching name or property."""
    for key in keys:
        for attr in ("property", "name", "itemprop"):
            tag = soup.find("meta", attrs={attr: key})
            if isinstance(tag, Tag) and tag.get("content"):
                value = normalize_text(str(tag["content"]))
                if value:
                    return value
    return None


def _safe_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return normalize_text(value) or None
    return None


def _jsonld_article(items: list[Any]) -> Optional[dict[str, Any]]:
    """Find the first item describing an article, looking inside @graph containers."""
    pending = list(items)
    while pending:
        item = pending.pop(0)
        if isinstance(item, list):
            pending.extend(item)
            continue
        if not isinstance(item, dict):
            continue

        graph = item.get("@graph")
        if isinstance(graph, list):
            pending.extend(graph)

        item_type = item.get("@type")
        types = item_type if isinstance(item_type, list) else [item_type]
        if any(isinstance(t, str) and ARTICLE_TYPES.fullmatch(t) for t in types):
            return item
    return None


def _opengraph_properties(blocks: list[Any]) -> dict[str, str]:
    """Flatten extruct's Open Graph blocks into a key -> value mapping."""
    properties: dict[str, str] = {}
    for block in blocks:
        if not isinstance(block, dict):
            continue
        for prop in block.get("properties", []):
            if not isinstance(prop, (list, tuple)) or len(prop) != 2:
                continue
            key, value = prop
            text = _safe_string(value)
            if text and key not in properties:
                properties[key] = text
    return properties


def read_structured_data(soup: BeautifulSoup, url: str = "") -> StructuredData:
    """
    Read JSON-LD and Open Graph data with extruct.

    Broken markup in one syntax only loses that syntax; the caller still
    gets the other one and falls back to plain <meta> tags.
    """
    try:
        data = extruct.extract(
            str(soup).encode("utf-8"),
            base_url=url or None,
            syntaxes=STRUCTURED_SYNTAXES,
            errors="ignore",
        )
    except Exception as e:
        logger.debug(f"Could not read structured data from {url or 'document'}: {e}")
        return StructuredData()

    return StructuredData(
        article=_jsonld_article(data.get("json-ld", [])),
        opengraph=_opengraph_properties(data.get("opengraph", [])),
    )


def _jsonld_author(author: Any) -> Optional[str]:
    if isinstance(author, str):
        return _safe_string(author)
    if isinstance(author, dict):
        return _safe_string(author.get("name"))
    if isinstance(author, list):
        names = [name for name in (_jsonld_author(a) for a in author) if name]
        return ", ".join(names) or None
    return None


def clean_document_title(raw_title: str) -> str:
    """
    Strip a trailing site name from a <title> value.

    "How to Bake Bread | Example Kitchen" -> "How to Bake Bread". The split is
    only kept when the remaining title still has at least three words.
    """
    title = normalize_text(raw_title) or ""
    parts = TITLE_SEPARATORS.split(title)
    if len(parts) > 1:
        candidate = parts[0].strip()
        if len(candidate.split()) >= 3:
            return candidate
        # Site name first: "Example Kitchen | How to Bake Bread"
        candidate = parts[-1].strip()
        if len(candidate.split()) >= 3:
            return candidate
    return title


def _find_title(soup: BeautifulSoup, structured: StructuredData) -> Optional[str]:
    if structured.article:
        for key in ("headline", "name"):
            value = _safe_string(structured.article.get(key))
            if value:
                return value

    if "og:title" in structured.opengraph:
        return structured.opengraph["og:title"]

    meta_title = _meta_content(soup, "twitter:title", "dc:title", "DC.title")
    if meta_title:
        return meta_title

    title_tag = soup.find("title")
    if isinstance(title_tag, Tag):
        text = title_tag.get_text()
        if text.strip():
            return clean_document_title(text)

    h1 = soup.find("h1")
    if isinstance(h1, Tag):
        return normalize_text(h1.get_text()) or None

    return None


def find_byline_element(soup: BeautifulSoup) -> Optional[Tag]:
    """Find the element that most likely holds the author line."""
    candidates = soup.find_all(attrs={"rel": "author"}) + soup.find_all(attrs={"itemprop": "author"})
    for tag in soup.find_all(True):
        match_string = " ".join(tag.get("class") or []) + " " + str(tag.get("id") or "")
        if BYLINE_PATTERN.search(match_string):
            candidates.append(tag)

    for tag in candidates:
        if not isinstance(tag, Tag) or tag.name in ("meta", "link"):
            continue
        text = normalize_text(tag.get_text())
        if text and len(text) < MAX_BYLINE_LENGTH:
            return tag
    return None


def _find_byline(soup: BeautifulSoup, structured: StructuredData) -> Optional[str]:
    if structured.article:
        author = _jsonld_author(structured.article.get("author"))
        if author:
            return author

    # article:author is frequently a profile URL rather than a name
    for meta_author in (
        structured.opengraph.get("article:author"),
        _meta_content(soup, "author", "dc:creator", "DC.creator"),
    ):
        if meta_author and not meta_author.startswith(("http://", "https://")):
            return meta_author

    element = find_byline_element(soup)
    if element is not None:
        return normalize_text(element.get_text())
    return None


def _find_excerpt(soup: BeautifulSoup, structured: StructuredData) -> Optional[str]:
    if structured.article:
        value = _safe_string(structured.article.get("description"))
        if value:
            return value
    if "og:description" in structured.opengraph:
        return structured.opengraph["og:description"]
    return _meta_content(soup, "description", "twitter:description", "dc:description")


def _find_site_name(soup: BeautifulSoup, structured: StructuredData) -> Optional[str]:
    if structured.article:
        publisher = structured.article.get("publisher")
        if isinstance(publisher, dict):
            value = _safe_string(publisher.get("name"))
            if value:
                return value
    if "og:site_name" in structured.opengraph:
        return structured.opengraph["og:site_name"]
    return _meta_content(soup, "application-name")


def _find_published_time(soup: BeautifulSoup, structured: StructuredData) -> Optional[str]:
    if structured.article:
        value = _safe_string(structured.article.get("datePublished"))
        if value:
            return value
    if "article:published_time" in structured.opengraph:
        return structured.opengraph["article:published_time"]
    return _meta_content(soup, "datePublished", "date")


def extract_metadata(soup: BeautifulSoup, url: str = "") -> PageMetadata:
    """
    Read article metadata from a parsed document.

    Sources are tried in order of reliability: JSON-LD, Open Graph, other
    <meta> tags, then document structure.

    Args:
        soup: Parsed document (before any cleanup)
        url: Page URL, passed to extruct as the base URL

    Returns:
        PageMetadata with whichever fields were found
    """
    structured = read_structured_data(soup, url)

    lang = None
    html_tag = soup.find("html")
    if isinstance(html_tag, Tag) and html_tag.get("lang"):
        lang = str(html_tag["lang"]).strip() or None

    return PageMetadata(
        title=_find_title(soup, structured),
        byline=_find_byline(soup, structured),
        excerpt=_find_excerpt(soup, structured),
        site_name=_find_site_name(soup, structured),
        published_time=_find_published_time(soup, structured),
        lang=lang,
    )
