"""HTML to Markdown conversion driven by a RuleTable."""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional, Union

from bs4 import BeautifulSoup, CData, NavigableString, PageElement, Tag

from ..exceptions import ConversionError
from ..models.article import ExtractedArticle
from ..models.config import ConversionConfig
from .rules import Filter, Rule, RuleTable, is_block, is_void

logger = logging.getLogger(__name__)

WHITESPACE = re.compile(r"[ \r\n\t]+")
BLANK_LINE = re.compile(r"^[ \t]*$", re.MULTILINE)

# Appended to blank lines inside code blocks until normalization is done
CODE_LINE_MARK = "\x00"

# Applied to every text node outside code
MARKDOWN_ESCAPES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\\"), r"\\\\"),
    (re.compile(r"\*"), r"\*"),
    (re.compile(r"^-"), r"\-"),
    (re.compile(r"^\+ "), r"\+ "),
    (re.compile(r"^(=+)"), r"\\\1"),
    (re.compile(r"^(#{1,6}) "), r"\\\1 "),
    (re.compile(r"`"), r"\`"),
    (re.compile(r"^~~~"), r"\~~~"),
    (re.compile(r"\["), r"\["),
    (re.compile(r"\]"), r"\]"),
    (re.compile(r"^>"), r"\>"),
    (re.compile(r"_"), r"\_"),
    (re.compile(r"^(\d+)\. "), r"\1\. "),
)


def escape_markdown(text: str) -> str:
    """Backslash-escape characters that would otherwise read as Markdown syntax."""
    for pattern, replacement in MARKDOWN_ESCAPES:
        text = pattern.sub(replacement, text)
    return text


def _is_text(node: object) -> bool:
    # Comments, doctypes and processing instructions are NavigableString subclasses
    return type(node) is NavigableString or isinstance(node, CData)


def _hold_code_lines(replacement: str) -> str:
    """Mark blank lines inside a code block so the final blank-line pass skips them."""
    body = replacement.strip("\n")
    if not body:
        return replacement
    start = len(replacement) - len(replacement.lstrip("\n"))
    held = BLANK_LINE.sub(lambda match: match.group(0) + CODE_LINE_MARK, body)
    return replacement[:start] + held + replacement[start + len(body) :]


def _join(output: str, replacement: str) -> str:
    """Join two chunks, keeping at most two newlines between them."""
    head = output.rstrip("\n")
    tail = replacement.lstrip("\n")
    newlines = max(len(output) - len(head), len(replacement) - len(tail))
    return head + "\n\n"[:newlines] + tail


class HtmlToMarkdown:
    """
    Convert an HTML content tree into CommonMark-compatible Markdown.

    The tree is walked post-order: children are converted first and the
    matching rule turns (content, node, options) into Markdown. Overrides
    registered with ``add_rule`` win over the defaults.

    The input tree is never mutated, so the same article can be converted
    several times with different configurations. Both passes over the tree
    use an explicit stack, so nesting depth is unbounded.

    Example:
        converter = HtmlToMarkdown(ConversionConfig(include_links=False))
        markdown = converter.convert("<h1>Title</h1><p>Hello</p>")
    """

    def __init__(self, config: Optional[ConversionConfig] = None, rules: Optional[RuleTable] = None):
        self.config = config or ConversionConfig()
        self.rules = rules if rules is not None else RuleTable.for_config(self.config)

    def add_rule(self, rule: Rule) -> HtmlToMarkdown:
        self.rules.add(rule)
        return self

    def keep(self, filter: Filter) -> HtmlToMarkdown:
        self.rules.keep(filter)
        return self

    def remove(self, filter: Filter) -> HtmlToMarkdown:
        self.rules.remove(filter)
        return self

    def convert(self, content: Union[Tag, ExtractedArticle, str]) -> str:
        """
        Render the children of ``content`` as Markdown.

        Args:
            content: An element, an extracted article, or an HTML string

        Returns:
            Markdown with runs of blank lines collapsed and ends trimmed

        Raises:
            ConversionError: If the tree is cyclic or not HTML
        """
        if isinstance(content, ExtractedArticle):
            root: Tag = content.content
        elif isinstance(content, str):
            root = BeautifulSoup(content, "html.parser")
        elif isinstance(content, Tag):
            root = content
        else:
            raise ConversionError(f"Cannot convert {type(content).__name__} to Markdown")

        texts = self._collapse_whitespace(root)
        output = self._process(root, texts)

        markdown = self._post_process(output)
        logger.debug(f"Converted content to {len(markdown)} characters of Markdown")
        return markdown

    def _collapse_whitespace(self, root: Tag) -> dict[int, str]:
        """
        Compute collapsed text for every text node, keyed by id().

        Runs of whitespace become a single space; spaces at block boundaries
        and after another space are dropped. Text inside <pre> is left out
        and rendered verbatim.
        """
        texts: dict[int, str] = {}
        seen: set[int] = {id(root)}
        prev_key: Optional[int] = None
        keep_leading = False

        def trim_previous() -> None:
            if prev_key is not None:
                texts[prev_key] = texts[prev_key].rstrip(" ")

        stack: list[tuple[object, bool]] = [(child, False) for child in reversed(root.contents)]
        while stack:
            node, exiting = stack.pop()

            if isinstance(node, Tag):
                if exiting:
                    if is_block(node):
                        trim_previous()
                        prev_key = None
                        keep_leading = False
                    continue

                if id(node) in seen:
                    raise ConversionError("Content tree contains a cycle")
                seen.add(id(node))

                if is_block(node) or node.name == "br":
                    trim_previous()
                    prev_key = None
                    keep_leading = False
                elif is_void(node):
                    prev_key = None
                    keep_leading = True
                elif prev_key is not None:
                    keep_leading = False

                stack.append((node, True))
                if node.name != "pre":
                    stack.extend((child, False) for child in reversed(node.contents))

            elif _is_text(node):
                text = WHITESPACE.sub(" ", str(node))
                previous_ends_with_space = prev_key is None or texts[prev_key].endswith(" ")
                if previous_ends_with_space and not keep_leading and text.startswith(" "):
                    text = text[1:]
                texts[id(node)] = text
                if text:
                    prev_key = id(node)

        trim_previous()
        return texts

    def _process(self, root: Tag, texts: dict[int, str]) -> str:
        """
        Convert the children of ``root`` post-order.

        Each stack frame holds an element, the iterator over its children
        and the Markdown produced for them so far. A frame is replaced by
        its rule's output once its children are exhausted.
        """
        visited: set[int] = {id(root)}
        frames: list[tuple[Tag, Iterator[PageElement], list[str]]] = [(root, iter(root.children), [""])]

        while True:
            node, children, output = frames[-1]
            child = next(children, None)

            if child is None:
                frames.pop()
                if not frames:
                    return output[0]
                parent_output = frames[-1][2]
                parent_output[0] = _join(parent_output[0], self._replacement_for_node(node, output[0]))

            elif isinstance(child, Tag):
                if id(child) in visited:
                    raise ConversionError("Content tree contains a cycle")
                visited.add(id(child))
                frames.append((child, iter(child.children), [""]))

            elif _is_text(child):
                if id(child) in texts:
                    text = texts[id(child)]
                else:
                    # Inside <pre>; the code block rule reads raw text itself
                    text = str(child)
                replacement = text if self._is_code(child) else escape_markdown(text)
                output[0] = _join(output[0], replacement)

    def _replacement_for_node(self, node: Tag, content: str) -> str:
        rule = self.rules.for_node(node, self.config)

        if node.name == "pre":
            return _hold_code_lines(rule.replacement(content, node, self.config))

        if is_block(node) or not content.strip():
            return rule.replacement(content, node, self.config)

        # Inline elements hand their flanking whitespace to the surrounding text
        leading = " " if content[0].isspace() else ""
        trailing = " " if content[-1].isspace() else ""
        return leading + rule.replacement(content.strip(), node, self.config) + trailing

    @staticmethod
    def _is_code(node: NavigableString) -> bool:
        return node.find_parent(["code", "pre", "kbd", "samp", "tt"]) is not None

    @staticmethod
    def _post_process(output: str) -> str:
        """Collapse blank lines between blocks; lines held inside code blocks are untouched."""
        markdown = BLANK_LINE.sub("", output)
        markdown = re.sub(r"\n{3,}", "\n\n", markdown)
        markdown = re.sub(r"\A\n+", "", markdown)
        return markdown.rstrip().replace(CODE_LINE_MARK, "")
