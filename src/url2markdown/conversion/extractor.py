"""Readability-style main content extraction from HTML pages."""

from __future__ import annotations

import logging
import re
from typing import Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, Doctype, Tag

from ..exceptions import ExtractionError
from ..models.article import ExtractedArticle
from .metadata import BYLINE_PATTERN, MAX_BYLINE_LENGTH, extract_metadata, normalize_text

logger = logging.getLogger(__name__)

# Elements that never carry article text
REMOVE_TAGS = [
    "script",
    "style",
    "noscript",
    "template",
    "iframe",
    "object",
    "embed",
    "svg",
    "canvas",
    "link",
    "meta",
    "input",
    "textarea",
    "select",
    "button",
    "title",
]

# Structural elements dropped outright
BOILERPLATE_TAGS = {"nav", "footer", "aside", "dialog"}

BOILERPLATE_ROLES = {
    "navigation",
    "banner",
    "complementary",
    "contentinfo",
    "menu",
    "menubar",
    "dialog",
    "alertdialog",
}

# Elements whose presence keeps a <div> from being treated as a paragraph
BLOCK_TAGS = {
    "address",
    "article",
    "aside",
    "blockquote",
    "dl",
    "div",
    "figure",
    "footer",
    "form",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "header",
    "hr",
    "img",
    "main",
    "nav",
    "ol",
    "p",
    "picture",
    "pre",
    "section",
    "table",
    "ul",
}

# Elements whose text is scored
SCORE_TAGS = ["section", "h2", "h3", "h4", "h5", "h6", "p", "td", "pre"]

# Attributes that survive cleanup
KEEP_ATTRS = {"href", "src", "alt", "title", "start", "colspan", "rowspan"}

# Class/id keyword heuristics
UNLIKELY_CANDIDATES = re.compile(
    r"-ad-|ai2html|banner|breadcrumbs|combx|comment|community|cover-wrap|disqus|extra|footer|"
    r"gdpr|header|legends|menu|related|remark|replies|rss|shoutbox|sidebar|skyscraper|social|"
    r"sponsor|supplemental|ad-break|agegate|pagination|pager|popup|yom-remote|cookie|newsletter",
    re.IGNORECASE,
)
MAYBE_CANDIDATE = re.compile(r"and|article|body|column|content|main|mathjax|shadow", re.IGNORECASE)
AD_CANDIDATE = re.compile(r"(^|\s)(ad|ads|advert\w*|advertisement)(\s|$)", re.IGNORECASE)
POSITIVE = re.compile(
    r"article|body|content|entry|hentry|h-entry|main|page|pagination|post|text|blog|story",
    re.IGNORECASE,
)
NEGATIVE = re.compile(
    r"-ad-|hidden|^hid$| hid$| hid |^hid |banner|combx|comment|com-|contact|footer|gdpr|masthead|"
    r"media|meta|outbrain|promo|related|scroll|share|shoutbox|sidebar|skyscraper|sponsor|"
    r"shopping|tags|widget",
    re.IGNORECASE,
)
HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
SENTENCE_END = re.compile(r"\.( |$)")


class ReadabilityExtractor:
    """
    Isolates the main article of an HTML page.

    The heuristic follows the classic readability approach: strip unlikely
    nodes, score paragraph containers by text density and class/id hints,
    penalize link-heavy containers, pick the best one and pull in related
    siblings. Scoring constants are class attributes so they can be tuned
    against a fixture corpus.

    Tie-break: when two candidates have the same final score, the one that
    comes first in document order wins.

    Example:
        extractor = ReadabilityExtractor()
        article = extractor.extract(html, "https://example.com/post")
        print(article.title, article.length)
    """

    # Paragraphs shorter than this are ignored when scoring
    MIN_PARAGRAPH_LENGTH = 25
    # Articles with less text than this are rejected as too sparse
    MIN_CONTENT_LENGTH = 25
    # Siblings need at least this score (or a share of the top score) to join
    MIN_SIBLING_SCORE = 10.0
    SIBLING_SCORE_RATIO = 0.2
    CLASS_WEIGHT = 25

    def __init__(
        self,
        min_content_length: Optional[int] = None,
        keep_classes: bool = False,
    ) -> None:
        """
        Initialize the content extractor.

        Args:
            min_content_length: Override MIN_CONTENT_LENGTH
            keep_classes: Keep class attributes on all elements (normally only
                kept on <pre>/<code> for language detection)
        """
        if min_content_length is not None:
            self.MIN_CONTENT_LENGTH = min_content_length
        self._keep_classes = keep_classes

    def _detect_encoding(self, html: bytes) -> str:
        """Detect character encoding from a <meta charset> declaration."""
        head = html[:2048].decode("latin-1", errors="ignore")
        charset_match = re.search(r'charset=["\']?([^"\'\s>/;]+)', head, re.IGNORECASE)
        if charset_match:
            return charset_match.group(1).strip()
        return "utf-8"

    def _parse_html(self, html: Union[str, bytes]) -> BeautifulSoup:
        """Parse HTML into a tree; malformed markup is recovered, never rejected."""
        if isinstance(html, bytes):
            encoding = self._detect_encoding(html)
            try:
                html = html.decode(encoding, errors="replace")
            except LookupError:
                html = html.decode("utf-8", errors="replace")
        soup = BeautifulSoup(html, "html.parser")

        # html.parser does not synthesize <body> for fragments
        if soup.find("body") is None:
            body = soup.new_tag("body")
            container = soup.find("html") or soup
            for child in list(container.children):
                if isinstance(child, Doctype) or (isinstance(child, Tag) and child.name == "head"):
                    continue
                body.append(child.extract())
            container.append(body)
        return soup

    # Text helpers

    @staticmethod
    def _inner_text(tag: Tag) -> str:
        return normalize_text(tag.get_text()) or ""

    def _link_density(self, tag: Tag, text_length: Optional[int] = None) -> float:
        """Share of the element's text that sits inside links."""
        if text_length is None:
            text_length = len(self._inner_text(tag))
        if text_length == 0:
            return 0.0
        link_length = 0.0
        for link in tag.find_all("a"):
            href = str(link.get("href") or "")
            coefficient = 0.3 if href.startswith("#") else 1.0
            link_length += len(self._inner_text(link)) * coefficient
        return link_length / text_length

    @staticmethod
    def _match_string(tag: Tag) -> str:
        classes = tag.get("class") or []
        if isinstance(classes, str):
            classes = [classes]
        return " ".join(classes) + " " + str(tag.get("id") or "")

    def _class_weight(self, tag: Tag) -> int:
        """Positive/negative weight from class and id keywords."""
        weight = 0
        classes = " ".join(tag.get("class") or [])
        if classes:
            if NEGATIVE.search(classes):
                weight -= self.CLASS_WEIGHT
            if POSITIVE.search(classes):
                weight += self.CLASS_WEIGHT
        tag_id = str(tag.get("id") or "")
        if tag_id:
            if NEGATIVE.search(tag_id):
                weight -= self.CLASS_WEIGHT
            if POSITIVE.search(tag_id):
                weight += self.CLASS_WEIGHT
        return weight

    @staticmethod
    def _is_hidden(tag: Tag) -> bool:
        if tag.has_attr("hidden"):
            return True
        if str(tag.get("aria-hidden") or "").lower() == "true":
            return True
        return bool(HIDDEN_STYLE.search(str(tag.get("style") or "")))

    def _is_unlikely(self, tag: Tag) -> bool:
        """Decide whether an element is page chrome rather than article text."""
        if tag.name in BOILERPLATE_TAGS:
            return True
        if str(tag.get("role") or "").lower() in BOILERPLATE_ROLES:
            return True
        if self._is_hidden(tag):
            return True
        if tag.name in ("body", "a", "article", "main", "table", "tbody", "thead", "tr", "td", "th"):
            return False
        if tag.find_parent(["table", "code", "pre"]) is not None:
            return False

        match_string = self._match_string(tag)
        if AD_CANDIDATE.search(match_string):
            return True
        return bool(UNLIKELY_CANDIDATES.search(match_string)) and not MAYBE_CANDIDATE.search(match_string)

    def _is_byline(self, tag: Tag) -> bool:
        if tag.get("rel") == ["author"] or tag.get("itemprop") == "author":
            return True
        if not BYLINE_PATTERN.search(self._match_string(tag)):
            return False
        text = self._inner_text(tag)
        return 0 < len(text) < MAX_BYLINE_LENGTH

    # Preparation

    def _prepare(self, soup: BeautifulSoup, root: Tag) -> None:
        """Remove comments, scripts and unlikely candidates in one pass."""
        for comment in root.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()
        for tag in root.find_all(REMOVE_TAGS):
            if not tag.decomposed:
                tag.decompose()

        stack = [root]
        while stack:
            node = stack.pop()
            for child in list(node.children):
                if not isinstance(child, Tag):
                    continue
                if self._is_unlikely(child) or self._is_byline(child):
                    logger.debug(f"Removing unlikely candidate <{child.name} {self._match_string(child).strip()}>")
                    child.decompose()
                else:
                    stack.append(child)

        # Text-only divs behave like paragraphs
        for div in root.find_all("div"):
            if not any(isinstance(child, Tag) and child.name in BLOCK_TAGS for child in div.children):
                if self._inner_text(div):
                    div.name = "p"

    # Scoring

    def _initial_score(self, tag: Tag) -> float:
        score = 0.0
        if tag.name == "div":
            score += 5
        elif tag.name in ("pre", "td", "blockquote"):
            score += 3
        elif tag.name in ("address", "ol", "ul", "dl", "dd", "dt", "li", "form"):
            score -= 3
        elif tag.name in ("h1", "h2", "h3", "h4", "h5", "h6", "th"):
            score -= 5
        return score + self._class_weight(tag)

    def _score_candidates(self, root: Tag) -> tuple[dict[int, float], dict[int, Tag]]:
        """Distribute paragraph scores to their ancestors."""
        scores: dict[int, float] = {}
        nodes: dict[int, Tag] = {}

        # Ancestors above the document body are never candidates
        boundary = root.parent

        for element in root.find_all(SCORE_TAGS):
            text = self._inner_text(element)
            if len(text) < self.MIN_PARAGRAPH_LENGTH:
                continue

            content_score = 1 + text.count(",") + text.count("、") + min(len(text) // 100, 3)

            ancestor = element.parent
            level = 0
            while isinstance(ancestor, Tag) and ancestor is not boundary and level < 5:
                key = id(ancestor)
                if key not in scores:
                    scores[key] = self._initial_score(ancestor)
                    nodes[key] = ancestor
                divider = 1 if level == 0 else 2 if level == 1 else level * 3
                scores[key] += content_score / divider
                ancestor = ancestor.parent
                level += 1

        return scores, nodes

    def _select_top_candidate(
        self, root: Tag, scores: dict[int, float], nodes: dict[int, Tag]
    ) -> tuple[Tag, float]:
        top: Optional[Tag] = None
        top_score = float("-inf")
        for key, tag in nodes.items():
            final = scores[key] * (1 - self._link_density(tag))
            scores[key] = final
            if final > top_score:
                top, top_score = tag, final

        if top is None:
            logger.debug("No scored candidates; falling back to the document body")
            return root, 0.0

        # An only child carries no more information than its parent
        while (
            top is not root
            and top.parent is not None
            and top.parent is not root.parent
            and not isinstance(top.parent, BeautifulSoup)
            and len([c for c in top.parent.children if isinstance(c, Tag)]) == 1
        ):
            top = top.parent
            top_score = max(top_score, scores.get(id(top), top_score))

        return top, top_score

    def _gather_siblings(self, soup: BeautifulSoup, top: Tag, top_score: float, scores: dict[int, float]) -> Tag:
        """Collect the top candidate plus related siblings into a new container."""
        article = soup.new_tag("div")
        parent = top.parent
        if parent is None or isinstance(parent, BeautifulSoup) or top.name == "body":
            article.append(top.extract())
            return article

        threshold = max(self.MIN_SIBLING_SCORE, top_score * self.SIBLING_SCORE_RATIO)
        top_classes = top.get("class") or []

        for sibling in list(parent.children):
            if not isinstance(sibling, Tag):
                continue
            append = sibling is top
            if not append:
                bonus = top_score * 0.2 if top_classes and sibling.get("class") == top_classes else 0.0
                key = id(sibling)
                if key in scores and scores[key] + bonus >= threshold:
                    append = True
                elif sibling.name == "p":
                    text = self._inner_text(sibling)
                    density = self._link_density(sibling, len(text))
                    if len(text) > 80 and density < 0.25:
                        append = True
                    elif 0 < len(text) <= 80 and density == 0 and SENTENCE_END.search(text):
                        append = True
            if append:
                article.append(sibling.extract())

        return article

    # Cleanup

    def _should_clean(self, tag: Tag, scores: dict[int, float]) -> bool:
        """Conditional cleaning of containers that look like boilerplate."""
        if tag.find_parent(["pre", "code"]) is not None:
            return False
        if tag.name == "table" and (tag.find("th") is not None or tag.find("caption") is not None):
            return False

        weight = self._class_weight(tag)
        if weight + scores.get(id(tag), 0.0) < 0:
            return True

        text = self._inner_text(tag)
        if text.count(",") >= 10:
            return False

        paragraphs = len(tag.find_all("p"))
        images = len(tag.find_all("img"))
        # Long lists are tolerated unless they dwarf the paragraphs
        list_items = len(tag.find_all("li")) - 100
        inputs = len(tag.find_all("input"))
        density = self._link_density(tag, len(text))
        in_figure = tag.find_parent("figure") is not None or tag.name == "figure"
        is_list = tag.name in ("ul", "ol")

        if images > 1 and paragraphs / images < 0.5 and not in_figure:
            return True
        if not is_list and list_items > paragraphs:
            return True
        if inputs > paragraphs // 3:
            return True
        if not is_list and len(text) < self.MIN_PARAGRAPH_LENGTH and (images == 0 or images > 2) and density > 0:
            return True
        if not is_list and weight < 25 and density > 0.2:
            return True
        return weight >= 25 and density > 0.5

    def _clean_article(self, article: Tag, protected: set[int], scores: dict[int, float]) -> None:
        for tag in list(article.find_all(["form", "fieldset", "table", "ul", "ol", "div", "section"])):
            if tag.decomposed or id(tag) in protected:
                continue
            if self._should_clean(tag, scores):
                tag.decompose()

        # Headings with negative class weight usually title widgets
        for heading in list(article.find_all(["h1", "h2"])):
            if not heading.decomposed and self._class_weight(heading) < 0:
                heading.decompose()

        for paragraph in list(article.find_all("p")):
            if paragraph.decomposed:
                continue
            if not self._inner_text(paragraph) and paragraph.find(["img", "picture", "video"]) is None:
                paragraph.decompose()

    def _fix_lazy_images(self, article: Tag) -> None:
        for img in article.find_all("img"):
            if not img.get("src") or str(img.get("src")).startswith("data:"):
                for attr in ("data-src", "data-original", "data-lazy-src"):
                    if img.get(attr):
                        img["src"] = img[attr]
                        break

    def _clean_attributes(self, article: Tag) -> None:
        """Remove unnecessary attributes from elements."""
        for tag in article.find_all(True):
            keep = set(KEEP_ATTRS)
            if self._keep_classes or tag.name in ("pre", "code"):
                keep.add("class")
            attrs_to_remove = [attr for attr in tag.attrs if attr not in keep]
            for attr in attrs_to_remove:
                del tag[attr]

    def _resolve_links(self, article: Tag, base_url: str) -> None:
        """Convert relative URLs to absolute URLs."""
        if not base_url:
            return

        for tag in article.find_all("a", href=True):
            href = str(tag["href"]).strip()
            if href.startswith("#") or href.startswith(("mailto:", "tel:", "javascript:")):
                continue
            if not href.startswith(("http://", "https://")):
                tag["href"] = urljoin(base_url, href)

        for tag in article.find_all(src=True):
            src = str(tag["src"]).strip()
            if not src.startswith(("http://", "https://", "data:")):
                tag["src"] = urljoin(base_url, src)

    def _first_paragraph(self, article: Tag) -> Optional[str]:
        for paragraph in article.find_all("p"):
            text = self._inner_text(paragraph)
            if text:
                return text
        return None

    def extract(self, html: Union[str, bytes], url: str) -> ExtractedArticle:
        """
        Extract the main article from HTML.

        Args:
            html: Raw HTML (text, or bytes with a <meta charset>)
            url: Final page URL, used to resolve relative links

        Returns:
            ExtractedArticle with metadata and the article subtree

        Raises:
            ExtractionError: If no readable content could be isolated
        """
        soup = self._parse_html(html)

        body = soup.find("body")
        root = body if isinstance(body, Tag) else soup.find("html")
        if not isinstance(root, Tag) or not self._inner_text(root):
            logger.warning(f"Empty document body for {url}")
            raise ExtractionError(url=url)

        metadata = extract_metadata(soup, url)

        self._prepare(soup, root)
        scores, nodes = self._score_candidates(root)
        top, top_score = self._select_top_candidate(root, scores, nodes)
        logger.debug(f"Top candidate for {url}: <{top.name}> score={top_score:.1f}")

        article = self._gather_siblings(soup, top, top_score, scores)
        protected = {id(child) for child in article.children if isinstance(child, Tag)}
        protected.add(id(top))
        self._clean_article(article, protected, scores)
        self._fix_lazy_images(article)
        self._resolve_links(article, url)
        self._clean_attributes(article)

        text_length = len(self._inner_text(article))
        if text_length < self.MIN_CONTENT_LENGTH:
            logger.warning(f"Article too sparse for {url}: {text_length} characters")
            raise ExtractionError(url=url)

        excerpt = metadata.excerpt if metadata.excerpt is not None else self._first_paragraph(article)

        return ExtractedArticle(
            content=article,
            url=url,
            title=metadata.title,
            byline=metadata.byline,
            excerpt=excerpt,
            site_name=metadata.site_name,
            lang=metadata.lang,
            published_time=metadata.published_time,
        )
