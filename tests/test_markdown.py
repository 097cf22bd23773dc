"""Tests for the HTML to Markdown converter and its rule table."""

import pytest
from bs4 import BeautifulSoup
from url2markdown.conversion.markdown import HtmlToMarkdown, escape_markdown
from url2markdown.conversion.rules import Rule, RuleTable
from url2markdown.exceptions import ConversionError
from url2markdown.models.article import ExtractedArticle
from url2markdown.models.config import CodeBlockStyle, ConversionConfig, HeadingStyle, ImageHandling


def convert(html: str, **config) -> str:
    return HtmlToMarkdown(ConversionConfig(**config)).convert(html)


class TestBasicConversion:
    """Tests for the default rule set."""

    def test_round_trip_fixture(self):
        """Test the minimal article converts to heading plus linked paragraph."""
        html = '<h1>Title</h1><p>Hello <a href="https://x">world</a></p>'
        assert convert(html) == "# Title\n\nHello [world](https://x)"

    def test_converts_atx_headings(self):
        """Test all heading levels use # markers by default."""
        md = convert("<h1>One</h1><h2>Two</h2><h4>Four</h4>")
        assert md == "# One\n\n## Two\n\n#### Four"

    def test_converts_paragraphs(self):
        """Test paragraphs are separated by one blank line."""
        assert convert("<p>First</p><p>Second</p>") == "First\n\nSecond"

    def test_converts_bold_and_italic(self):
        """Test strong and emphasis delimiters."""
        md = convert("<p><strong>Bold</strong> and <em>italic</em></p>")
        assert md == "**Bold** and _italic_"

    def test_moves_flanking_whitespace_outside_delimiters(self):
        """Test whitespace inside inline elements ends up outside the markers."""
        assert convert("<p>Hello<em> world</em></p>") == "Hello _world_"

    def test_converts_strikethrough(self):
        """Test del/s/strike become ~~text~~."""
        assert convert("<p><del>old</del> <s>gone</s></p>") == "~~old~~ ~~gone~~"

    def test_converts_inline_code_without_escaping(self):
        """Test inline code keeps Markdown characters verbatim."""
        assert convert("<p>Use <code>a_b*c</code> here</p>") == "Use `a_b*c` here"

    def test_inline_code_with_backticks_uses_longer_fence(self):
        """Test code containing a backtick is wrapped in a longer delimiter."""
        assert convert("<p><code>a`b</code></p>") == "``a`b``"

    def test_converts_line_breaks(self):
        """Test <br> becomes a hard line break."""
        assert convert("<p>line1<br>line2</p>") == "line1  \nline2"

    def test_converts_horizontal_rule(self):
        """Test <hr> becomes a thematic break."""
        assert convert("<p>a</p><hr><p>b</p>") == "a\n\n* * *\n\nb"

    def test_converts_blockquote(self):
        """Test every blockquote line is prefixed."""
        md = convert("<blockquote><p>First</p><p>Second</p></blockquote>")
        assert md == "> First\n>\n> Second"

    def test_escapes_markdown_characters_in_text(self):
        """Test text that looks like Markdown syntax is escaped."""
        assert convert("<p>2 * 3 = 6</p>") == "2 \\* 3 = 6"
        assert convert("<p># not a heading</p>") == "\\# not a heading"
        assert convert("<p>[brackets]</p>") == "\\[brackets\\]"

    def test_collapses_whitespace(self):
        """Test runs of whitespace in text collapse to one space."""
        assert convert("<p>  Hello \n\n   world  </p>") == "Hello world"

    def test_link_title_is_kept(self):
        """Test link titles are emitted in quotes."""
        md = convert('<p><a href="https://x" title="Example">x</a></p>')
        assert md == '[x](https://x "Example")'

    def test_link_without_href_is_plain_text(self):
        """Test anchors without href degrade to their text."""
        assert convert('<p><a name="top">Top</a></p>') == "Top"

    def test_empty_link_is_dropped(self):
        """Test a link with no text and no image produces nothing."""
        assert convert('<p>Before<a href="https://x"></a> after</p>') == "Before after"


class TestLists:
    """Tests for list conversion."""

    def test_unordered_list(self):
        """Test bullet lists use the configured marker."""
        assert convert("<ul><li>One</li><li>Two</li></ul>") == "- One\n- Two"

    def test_unordered_list_custom_marker(self):
        """Test the bullet marker can be changed."""
        assert convert("<ul><li>One</li></ul>", bullet_list_marker="*") == "* One"

    def test_ordered_list_honors_start(self):
        """Test ordered lists number from the start attribute."""
        assert convert('<ol start="3"><li>a</li><li>b</li></ol>') == "3. a\n4. b"

    def test_nested_list_is_indented(self):
        """Test nested lists are indented under their parent item."""
        md = convert("<ul><li>Parent<ul><li>Child</li></ul></li><li>Next</li></ul>")
        assert md == "- Parent\n  - Child\n- Next"

    def test_whitespace_between_items_is_ignored(self):
        """Test source formatting between <li> elements does not leak."""
        html = """
        <ul>
            <li>One</li>
            <li>Two</li>
        </ul>
        """
        assert convert(html) == "- One\n- Two"


class TestCodeBlocks:
    """Tests for code block styles."""

    def test_fenced_code_block_with_language(self):
        """Test fenced blocks carry the language from the class name."""
        html = '<pre><code class="language-python">print("hi")\n</code></pre>'
        assert convert(html) == '```python\nprint("hi")\n```'

    def test_fenced_code_block_preserves_whitespace(self):
        """Test indentation inside <pre> survives."""
        html = "<pre><code>def f():\n    return 1</code></pre>"
        assert convert(html) == "```\ndef f():\n    return 1\n```"

    def test_fence_grows_when_code_contains_fence(self):
        """Test the fence is longer than any fence inside the code."""
        html = "<pre><code>```\nnested\n```</code></pre>"
        assert convert(html).startswith("````\n")

    def test_indented_code_block(self):
        """Test indented style prefixes every line with four spaces."""
        html = "<p>Example:</p><pre><code>a = 1\nb = 2</code></pre>"
        md = convert(html, code_block_style=CodeBlockStyle.INDENTED)
        assert md == "Example:\n\n    a = 1\n    b = 2"

    def test_blank_lines_inside_fenced_code_are_kept(self):
        """Test runs of blank lines in code survive the blank-line collapse."""
        assert convert("<pre>x\n\n\n\ny</pre>") == "```\nx\n\n\n\ny\n```"

    def test_whitespace_only_code_lines_are_kept(self):
        """Test indentation on otherwise empty code lines is not stripped."""
        assert convert("<pre>if x:\n    \n    y()</pre>") == "```\nif x:\n    \n    y()\n```"

    def test_blank_lines_inside_indented_code_are_kept(self):
        md = convert("<p>Before</p><pre>a\n\n\nb</pre>\n\n\n<p>After</p>", code_block_style=CodeBlockStyle.INDENTED)
        assert md == "Before\n\n    a\n    \n    \n    b\n\nAfter"

    def test_code_block_text_is_not_escaped(self):
        """Test Markdown characters inside code blocks are left alone."""
        md = convert("<pre><code>x = a_b * 2</code></pre>")
        assert "x = a_b * 2" in md


class TestHeadingStyles:
    """Tests for ATX and Setext headings."""

    def test_setext_headings(self):
        """Test h1/h2 are underlined in Setext style."""
        md = convert("<h1>Title</h1><h2>Sub</h2>", heading_style=HeadingStyle.SETEXT)
        assert md == "Title\n=====\n\nSub\n---"

    def test_setext_falls_back_to_atx_below_h2(self):
        """Test levels 3-6 keep # markers in Setext mode."""
        md = convert("<h3>Deep</h3>", heading_style=HeadingStyle.SETEXT)
        assert md == "### Deep"


class TestLinkAndImagePolicies:
    """Tests for include_links and image_handling."""

    HTML = (
        '<p>Read <a href="https://example.com/docs">the docs</a> now.</p>'
        '<p>Look <img src="https://example.com/cat.png" alt="A cat"> here</p>'
    )

    def test_links_included_by_default(self):
        """Test links render as [text](href)."""
        assert "[the docs](https://example.com/docs)" in convert(self.HTML)

    def test_links_removed_keeps_text(self):
        """Test disabling links keeps the visible text only."""
        md = convert(self.HTML, include_links=False)
        assert "Read the docs now." in md
        assert "](" not in md.split("\n\n")[0]
        assert "https://example.com/docs" not in md

    def test_image_included(self):
        """Test images render with alt text and source."""
        md = convert(self.HTML)
        assert "Look ![A cat](https://example.com/cat.png) here" in md

    def test_image_alt_text(self):
        """Test altText mode replaces images with a placeholder."""
        md = convert(self.HTML, image_handling=ImageHandling.ALT_TEXT)
        assert "Look [Image: A cat] here" in md
        assert "cat.png" not in md

    def test_image_alt_text_without_alt(self):
        """Test images without alt become [Image]."""
        md = convert('<p><img src="https://example.com/x.png"></p>', image_handling=ImageHandling.ALT_TEXT)
        assert md == "[Image]"

    def test_image_removed(self):
        """Test remove mode drops images entirely."""
        md = convert(self.HTML, image_handling=ImageHandling.REMOVE)
        assert "cat.png" not in md
        assert "Image" not in md
        assert "A cat" not in md

    def test_linked_image_alt_text_drops_link(self):
        """Test an image link does not leak the image URL in altText mode."""
        html = '<p><a href="https://x/i.png"><img src="https://x/i.png" alt="cat"></a></p>'
        md = convert(html, image_handling=ImageHandling.ALT_TEXT)
        assert md == "[Image: cat]"

    def test_linked_image_removed_leaves_nothing(self):
        html = '<p>Photo: <a href="https://x/i.png"><img src="https://x/i.png" alt="cat"></a></p>'
        assert convert(html, image_handling=ImageHandling.REMOVE) == "Photo:"

    def test_linked_image_included_keeps_link(self):
        """Test image links stay links when images are included."""
        html = '<p><a href="https://x/page"><img src="https://x/i.png" alt="cat"></a></p>'
        assert convert(html) == "[![cat](https://x/i.png)](https://x/page)"

    def test_image_without_src_is_dropped(self):
        """Test images without a source produce nothing."""
        assert convert('<p>Text<img alt="nothing"></p>') == "Text"


class TestTables:
    """Tests for table conversion."""

    def test_simple_table(self):
        """Test the first row becomes the header row."""
        html = "<table><tr><th>A</th><th>B</th></tr><tr><td>1</td><td>2</td></tr></table>"
        assert convert(html) == "| A | B |\n| --- | --- |\n| 1 | 2 |"

    def test_table_with_sections_and_caption(self):
        """Test thead/tbody are transparent and the caption precedes the table."""
        html = (
            "<table><caption>Prices</caption>"
            "<thead><tr><th>Item</th><th>Cost</th></tr></thead>"
            "<tbody><tr><td>Tea</td><td>3</td></tr></tbody></table>"
        )
        assert convert(html) == "Prices\n\n| Item | Cost |\n| --- | --- |\n| Tea | 3 |"

    def test_pipes_in_cells_are_escaped(self):
        """Test a literal pipe cannot break the table."""
        html = "<table><tr><th>a|b</th></tr></table>"
        assert convert(html) == "| a\\|b |\n| --- |"


class TestNormalization:
    """Tests for whitespace normalization and structural fallbacks."""

    def test_collapses_blank_lines(self):
        """Test empty blocks never produce more than one blank line."""
        html = "<div><p>a</p><p></p><p>  </p><div></div><section></section><p>b</p></div>"
        assert convert(html) == "a\n\nb"

    def test_no_triple_newlines(self):
        """Test output never contains three consecutive newlines."""
        html = "<div><h2>x</h2><div><div><p>y</p></div></div><ul><li>z</li></ul><p></p></div>"
        assert "\n\n\n" not in convert(html)

    def test_trims_output(self):
        """Test leading and trailing whitespace is trimmed."""
        md = convert("\n\n   <p>Body</p>   \n\n")
        assert md == "Body"

    def test_unknown_inline_element_keeps_text(self):
        """Test unknown inline elements degrade to their content."""
        assert convert("<p>Hello <custom-tag>world</custom-tag></p>") == "Hello world"

    def test_unknown_block_element_is_separated(self):
        """Test block containers without a rule are surrounded by blank lines."""
        assert convert("<section>one</section><article>two</article>") == "one\n\ntwo"

    def test_scripts_and_styles_are_removed(self):
        """Test non-content elements never reach the output."""
        md = convert("<p>Text</p><script>alert(1)</script><style>p{}</style>")
        assert md == "Text"


class TestDeterminism:
    """Tests for purity of the converter."""

    def test_same_input_same_output(self):
        """Test repeated conversions are identical."""
        html = "<h2>A</h2><p>Some <b>bold</b> text, <a href='/x'>link</a>.</p><ul><li>i</li></ul>"
        converter = HtmlToMarkdown()
        assert converter.convert(html) == converter.convert(html)

    def test_does_not_mutate_tree(self):
        """Test converting a tree leaves it unchanged."""
        soup = BeautifulSoup("<div><p>  spaced   text </p><p><em> x </em></p></div>", "html.parser")
        before = str(soup)
        HtmlToMarkdown().convert(soup.div)
        HtmlToMarkdown(ConversionConfig(include_links=False)).convert(soup.div)
        assert str(soup) == before

    def test_converts_extracted_article(self):
        """Test an ExtractedArticle converts through its content tree."""
        soup = BeautifulSoup("<div><p>Article body</p></div>", "html.parser")
        article = ExtractedArticle(content=soup.div, url="https://example.com")
        assert HtmlToMarkdown().convert(article) == "Article body"


class TestErrors:
    """Tests for ConversionError."""

    def test_rejects_non_html_input(self):
        """Test non-tree input raises ConversionError."""
        with pytest.raises(ConversionError):
            HtmlToMarkdown().convert(42)  # type: ignore[arg-type]

    def test_deeply_nested_tree_converts(self):
        """Test well-formed but deeply nested wrappers do not fail conversion."""
        html = "<div>" * 500 + "<p>deep text here</p>" + "</div>" * 500
        assert HtmlToMarkdown().convert(html) == "deep text here"

    def test_deeply_nested_inline_elements(self):
        """Test deep inline nesting keeps its text and spacing."""
        html = "<p>start " + "<span>" * 400 + "middle" + "</span>" * 400 + " end</p>"
        assert HtmlToMarkdown().convert(html) == "start middle end"


class TestRuleTable:
    """Tests for rule precedence and customization."""

    def test_override_rule_takes_precedence(self):
        """Test added rules win over default rules."""
        converter = HtmlToMarkdown()
        converter.add_rule(Rule("strikeAsText", "del", lambda content, node, options: content))
        assert converter.convert("<p><del>old</del> new</p>") == "old new"

    def test_latest_override_wins(self):
        """Test the most recently added override is consulted first."""
        table = RuleTable()
        table.add(Rule("first", "mark", lambda content, node, options: "1"))
        table.add(Rule("second", "mark", lambda content, node, options: "2"))
        assert HtmlToMarkdown(rules=table).convert("<p><mark>x</mark></p>") == "2"

    def test_predicate_filter(self):
        """Test filters can be predicates over the node."""
        rule = Rule(
            "highlight",
            lambda node, options: node.name == "span" and "hl" in (node.get("class") or []),
            lambda content, node, options: f"=={content}==",
        )
        converter = HtmlToMarkdown().add_rule(rule)
        assert converter.convert('<p><span class="hl">key</span> <span>plain</span></p>') == "==key== plain"

    def test_keep_renders_raw_html(self):
        """Test kept elements are emitted as HTML."""
        converter = HtmlToMarkdown().keep("sup")
        assert converter.convert("<p>x<sup>2</sup></p>") == "x<sup>2</sup>"

    def test_remove_drops_element(self):
        """Test removed elements vanish with their content."""
        converter = HtmlToMarkdown().remove("small")
        assert converter.convert("<p>Price<small> (excl. tax)</small></p>") == "Price"

    def test_for_config_adds_overrides(self):
        """Test option-driven overrides are registered."""
        table = RuleTable.for_config(ConversionConfig(include_links=False, image_handling=ImageHandling.REMOVE))
        names = [rule.name for rule in table.overrides]
        assert "removeLinks" in names
        assert "removeImages" in names

    def test_find_rule_by_name(self):
        """Test rules can be looked up by name."""
        assert RuleTable().find("heading") is not None
        assert RuleTable().find("missing") is None


class TestEscapeMarkdown:
    """Tests for the text escaping helper."""

    def test_escapes_list_markers_at_start(self):
        """Test leading list and quote markers are escaped."""
        assert escape_markdown("- item") == "\\- item"
        assert escape_markdown("1. first") == "1\\. first"
        assert escape_markdown("> quote") == "\\> quote"

    def test_leaves_plain_text_alone(self):
        """Test ordinary text is untouched."""
        assert escape_markdown("Hello, world") == "Hello, world"
