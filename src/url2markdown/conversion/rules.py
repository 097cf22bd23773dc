"""Conversion rules: tag filters paired with Markdown replacement functions."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable, Optional, Union

from bs4 import Tag

from ..models.config import CodeBlockStyle, ConversionConfig, HeadingStyle, ImageHandling

# A replacement receives the already-converted content of the node's children
Replacement = Callable[[str, Tag, ConversionConfig], str]
Predicate = Callable[[Tag, ConversionConfig], bool]
Filter = Union[str, tuple[str, ...], frozenset[str], Predicate]

BLOCK_ELEMENTS = frozenset(
    {
        "address",
        "article",
        "aside",
        "audio",
        "blockquote",
        "body",
        "canvas",
        "center",
        "dd",
        "dir",
        "div",
        "dl",
        "dt",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "frameset",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "html",
        "li",
        "main",
        "menu",
        "nav",
        "noframes",
        "noscript",
        "ol",
        "output",
        "p",
        "pre",
        "section",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "tr",
        "ul",
    }
)

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "command",
        "embed",
        "hr",
        "img",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# Elements rendered even when they contain no text
MEANINGFUL_WHEN_BLANK = frozenset(
    {"table", "thead", "tbody", "tfoot", "th", "td", "iframe", "script", "audio", "video"}
)
_VISIBLE_WHEN_EMPTY = sorted(VOID_ELEMENTS | MEANINGFUL_WHEN_BLANK)

CODE_LANGUAGE = re.compile(r"(?:^|\s)(?:language|lang|highlight-source)-([\w#+.-]+)")


def is_block(node: Tag) -> bool:
    return node.name in BLOCK_ELEMENTS


def is_void(node: Tag) -> bool:
    return node.name in VOID_ELEMENTS


def is_blank(node: Tag) -> bool:
    """True for elements with no text and nothing visual inside them."""
    if node.name in MEANINGFUL_WHEN_BLANK or is_void(node):
        return False
    if node.get_text().strip():
        return False
    return node.find(_VISIBLE_WHEN_EMPTY) is None


@dataclass(frozen=True)
class Rule:
    """
    A conversion rule.

    Attributes:
        name: Identifier, used for debugging and rule replacement
        filter: Tag name, collection of tag names, or predicate(node, options)
        replacement: Function producing Markdown from (content, node, options)
    """

    name: str
    filter: Filter
    replacement: Replacement

    def matches(self, node: Tag, options: ConversionConfig) -> bool:
        if isinstance(self.filter, str):
            return node.name == self.filter
        if isinstance(self.filter, (tuple, list, frozenset)):
            return node.name in self.filter
        return bool(self.filter(node, options))


# Replacement functions


def _paragraph(content: str, node: Tag, options: ConversionConfig) -> str:
    return "\n\n" + content + "\n\n"


def _line_break(content: str, node: Tag, options: ConversionConfig) -> str:
    return "  \n"


def _heading(content: str, node: Tag, options: ConversionConfig) -> str:
    level = int(node.name[1])
    if options.heading_style == HeadingStyle.SETEXT and level < 3:
        width = max(len(line) for line in content.split("\n"))
        underline = ("=" if level == 1 else "-") * width
        return "\n\n" + content + "\n" + underline + "\n\n"
    text = re.sub(r"\s*\n\s*", " ", content)
    return "\n\n" + "#" * level + " " + text + "\n\n"


def _blockquote(content: str, node: Tag, options: ConversionConfig) -> str:
    lines = content.strip("\n").split("\n")
    quoted = "\n".join("> " + line if line else ">" for line in lines)
    return "\n\n" + quoted + "\n\n"


def _list(content: str, node: Tag, options: ConversionConfig) -> str:
    parent = node.parent
    if parent is not None and parent.name == "li":
        element_children = [c for c in parent.children if isinstance(c, Tag)]
        if element_children and element_children[-1] is node:
            return "\n" + content
    return "\n\n" + content + "\n\n"


def _list_item(content: str, node: Tag, options: ConversionConfig) -> str:
    parent = node.parent
    if parent is not None and parent.name == "ol":
        try:
            start = int(str(parent.get("start") or 1))
        except ValueError:
            start = 1
        siblings = [c for c in parent.children if isinstance(c, Tag) and c.name == "li"]
        index = next(i for i, item in enumerate(siblings) if item is node)
        prefix = f"{start + index}. "
    else:
        prefix = options.bullet_list_marker + " "

    indent = " " * len(prefix)
    lines = content.strip("\n").split("\n")
    body = "\n".join([lines[0]] + [indent + line if line else "" for line in lines[1:]])

    has_next = node.find_next_sibling("li") is not None
    return prefix + body + ("\n" if has_next else "")


def _horizontal_rule(content: str, node: Tag, options: ConversionConfig) -> str:
    return "\n\n* * *\n\n"


def _emphasis(content: str, node: Tag, options: ConversionConfig) -> str:
    if not content.strip():
        return ""
    return options.em_delimiter + content + options.em_delimiter


def _strong(content: str, node: Tag, options: ConversionConfig) -> str:
    if not content.strip():
        return ""
    return options.strong_delimiter + content + options.strong_delimiter


def _strikethrough(content: str, node: Tag, options: ConversionConfig) -> str:
    if not content.strip():
        return ""
    return "~~" + content + "~~"


def _is_inline_code(node: Tag, options: ConversionConfig) -> bool:
    return node.name in ("code", "kbd", "samp", "tt") and node.find_parent("pre") is None


def _inline_code(content: str, node: Tag, options: ConversionConfig) -> str:
    if not content:
        return ""
    code = content.replace("\r\n", " ").replace("\n", " ")
    extra_space = " " if re.search(r"^`|^ .*?[^ ].* $|`$", code) else ""

    delimiter = "`"
    runs = set(re.findall(r"`+", code))
    while delimiter in runs:
        delimiter += "`"
    return delimiter + extra_space + code + extra_space + delimiter


def code_language(node: Tag) -> str:
    """Language hint from a language-xxx / lang-xxx class on <code> or <pre>."""
    for candidate in (node.find("code"), node):
        if isinstance(candidate, Tag):
            match = CODE_LANGUAGE.search(" ".join(candidate.get("class") or []))
            if match:
                return match.group(1)
    return ""


def _code_block(content: str, node: Tag, options: ConversionConfig) -> str:
    code = node.get_text()
    if code.startswith("\n"):
        code = code[1:]
    code = code.rstrip("\n")

    if options.code_block_style == CodeBlockStyle.INDENTED:
        return "\n\n    " + code.replace("\n", "\n    ") + "\n\n"

    fence_char = options.fence[0]
    fence_size = 3
    for match in re.finditer(rf"^{re.escape(fence_char)}{{3,}}", code, flags=re.MULTILINE):
        fence_size = max(fence_size, len(match.group(0)) + 1)
    fence = fence_char * fence_size
    return "\n\n" + fence + code_language(node) + "\n" + code + "\n" + fence + "\n\n"


def _has_href(node: Tag, options: ConversionConfig) -> bool:
    return node.name == "a" and bool(node.get("href"))


def _title_part(node: Tag) -> str:
    title = node.get("title")
    if not title:
        return ""
    escaped = str(title).replace('"', '\\"')
    return f' "{escaped}"'


def _wraps_only_images(node: Tag) -> bool:
    return node.find("img") is not None and not node.get_text().strip()


def _link(content: str, node: Tag, options: ConversionConfig) -> str:
    # Image links usually point at the image itself
    if options.image_handling != ImageHandling.INCLUDE and _wraps_only_images(node):
        return content
    href = str(node["href"]).strip().replace(" ", "%20").replace("(", "\\(").replace(")", "\\)")
    return f"[{content}]({href}{_title_part(node)})"


def _link_text_only(content: str, node: Tag, options: ConversionConfig) -> str:
    return content


def _escape_alt(alt: str) -> str:
    return re.sub(r"\s+", " ", alt).strip().replace("[", "\\[").replace("]", "\\]")


def _image(content: str, node: Tag, options: ConversionConfig) -> str:
    src = str(node.get("src") or "").strip()
    if not src:
        return ""
    alt = _escape_alt(str(node.get("alt") or ""))
    return f"![{alt}]({src.replace(' ', '%20')}{_title_part(node)})"


def _image_alt_text(content: str, node: Tag, options: ConversionConfig) -> str:
    alt = _escape_alt(str(node.get("alt") or ""))
    if alt:
        return f"[Image: {alt}]"
    return "[Image]"


def _nothing(content: str, node: Tag, options: ConversionConfig) -> str:
    return ""


def _passthrough(content: str, node: Tag, options: ConversionConfig) -> str:
    return content


def _table_cell(content: str, node: Tag, options: ConversionConfig) -> str:
    cell = re.sub(r"\s*\n\s*", " ", content.strip()).replace("|", "\\|")
    row = node.parent
    first = row is not None and next((c for c in row.children if isinstance(c, Tag)), None) is node
    return ("| " if first else " ") + cell + " |"


def _table_row(content: str, node: Tag, options: ConversionConfig) -> str:
    table = node.find_parent("table")
    row = "\n" + content
    if table is not None and table.find("tr") is node:
        cells = [c for c in node.children if isinstance(c, Tag) and c.name in ("th", "td")]
        row += "\n|" + " --- |" * max(len(cells), 1)
    return row


def _table(content: str, node: Tag, options: ConversionConfig) -> str:
    caption = ""
    caption_tag = node.find("caption")
    if isinstance(caption_tag, Tag):
        caption = re.sub(r"\s+", " ", caption_tag.get_text()).strip()
    rows = re.sub(r"\n{2,}", "\n", content).strip("\n")
    prefix = "\n\n" + caption if caption else ""
    return prefix + "\n\n" + rows + "\n\n"


def blank_replacement(content: str, node: Tag, options: ConversionConfig) -> str:
    return "\n\n" if is_block(node) else ""


def keep_replacement(content: str, node: Tag, options: ConversionConfig) -> str:
    html = str(node)
    return "\n\n" + html + "\n\n" if is_block(node) else html


def default_replacement(content: str, node: Tag, options: ConversionConfig) -> str:
    """Unknown elements degrade to their content."""
    return "\n\n" + content + "\n\n" if is_block(node) else content


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule("paragraph", "p", _paragraph),
    Rule("lineBreak", "br", _line_break),
    Rule("heading", ("h1", "h2", "h3", "h4", "h5", "h6"), _heading),
    Rule("blockquote", "blockquote", _blockquote),
    Rule("list", ("ul", "ol"), _list),
    Rule("listItem", "li", _list_item),
    Rule("codeBlock", "pre", _code_block),
    Rule("horizontalRule", "hr", _horizontal_rule),
    Rule("inlineLink", _has_href, _link),
    Rule("emphasis", ("em", "i"), _emphasis),
    Rule("strong", ("strong", "b"), _strong),
    Rule("strikethrough", ("del", "s", "strike"), _strikethrough),
    Rule("code", _is_inline_code, _inline_code),
    Rule("image", "img", _image),
    Rule("tableCaption", "caption", _nothing),
    Rule("tableCell", ("th", "td"), _table_cell),
    Rule("tableRow", "tr", _table_row),
    Rule("tableSection", ("thead", "tbody", "tfoot"), _passthrough),
    Rule("table", "table", _table),
)

DEFAULT_REMOVE: tuple[str, ...] = ("head", "script", "style", "noscript", "template", "title")

# Override rules selected by user options
REMOVE_LINKS = Rule("removeLinks", "a", _link_text_only)
IMAGE_ALT_TEXT = Rule("imageAltText", "img", _image_alt_text)
REMOVE_IMAGES = Rule("removeImages", "img", _nothing)

BLANK_RULE = Rule("blank", lambda node, options: is_blank(node), blank_replacement)
KEEP_RULE_NAME = "keep"
REMOVE_RULE_NAME = "remove"
DEFAULT_RULE = Rule("default", lambda node, options: True, default_replacement)


class RuleTable:
    """
    Ordered rule lookup.

    Precedence: blank elements, then override rules (most recently added
    first), then default rules in table order, then keep and remove filters,
    then the catch-all default rule.

    Example:
        rules = RuleTable()
        rules.add(Rule("strikeAsText", "del", lambda content, node, options: content))
        rule = rules.for_node(tag, ConversionConfig())
    """

    def __init__(self, rules: Iterable[Rule] = DEFAULT_RULES, remove: Iterable[str] = DEFAULT_REMOVE) -> None:
        self._defaults: list[Rule] = list(rules)
        self._overrides: list[Rule] = []
        self._keep: list[Filter] = []
        self._remove: list[Filter] = list(remove)

    @classmethod
    def for_config(cls, config: ConversionConfig) -> RuleTable:
        """Build the default table plus the overrides implied by ``config``."""
        table = cls()
        if not config.include_links:
            table.add(REMOVE_LINKS)
        if config.image_handling == ImageHandling.ALT_TEXT:
            table.add(IMAGE_ALT_TEXT)
        elif config.image_handling == ImageHandling.REMOVE:
            table.add(REMOVE_IMAGES)
        return table

    @property
    def overrides(self) -> list[Rule]:
        return list(self._overrides)

    def add(self, rule: Rule) -> RuleTable:
        """Add an override rule; it takes precedence over every default rule."""
        self._overrides.insert(0, rule)
        return self

    def keep(self, filter: Filter) -> RuleTable:
        """Render matching elements as raw HTML."""
        self._keep.insert(0, filter)
        return self

    def remove(self, filter: Filter) -> RuleTable:
        """Drop matching elements entirely."""
        self._remove.insert(0, filter)
        return self

    def for_node(self, node: Tag, options: ConversionConfig) -> Rule:
        if BLANK_RULE.matches(node, options):
            return BLANK_RULE

        for rule in self._overrides:
            if rule.matches(node, options):
                return rule
        for rule in self._defaults:
            if rule.matches(node, options):
                return rule

        for keep_filter in self._keep:
            if Rule(KEEP_RULE_NAME, keep_filter, keep_replacement).matches(node, options):
                return Rule(KEEP_RULE_NAME, keep_filter, keep_replacement)
        for remove_filter in self._remove:
            if Rule(REMOVE_RULE_NAME, remove_filter, _nothing).matches(node, options):
                return Rule(REMOVE_RULE_NAME, remove_filter, _nothing)

        return DEFAULT_RULE

    def find(self, name: str) -> Optional[Rule]:
        """Look up a rule by name (overrides first)."""
        for rule in self._overrides + self._defaults:
            if rule.name == name:
                return rule
        return None
