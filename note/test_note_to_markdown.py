#!/usr/bin/env python3
"""
Unit tests for note_to_markdown.py

Tests cover:
- Headings, inline formatting and links
- Lists, code, blockquotes and rules
- Editor name/id attributes
- Entity and character references
- Edge cases (empty input, None, plain text)
"""

import itertools
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from markdown_to_note import convert
from note_to_markdown import note_html_to_markdown


class TestHeadings:
    def test_h2_with_editor_attributes(self):
        assert note_html_to_markdown('<h2 name="a" id="a">Title</h2>') == "## Title"

    def test_h3(self):
        assert note_html_to_markdown("<h3>Sub</h3>") == "### Sub"

    def test_heading_with_inline_formatting(self):
        assert note_html_to_markdown("<h2><strong>Bold</strong> heading</h2>") == "## **Bold** heading"


class TestInlineFormatting:
    def test_bold(self):
        assert note_html_to_markdown("<p><strong>bold</strong> and <b>b</b></p>") == "**bold** and **b**"

    def test_italic(self):
        assert note_html_to_markdown("<p><em>it</em> and <i>i</i></p>") == "*it* and *i*"

    def test_unknown_tags_keep_text(self):
        assert note_html_to_markdown("<p><span>kept</span> <u>too</u></p>") == "kept too"

    def test_inline_code(self):
        assert note_html_to_markdown("<p>Use <code>foo()</code> here</p>") == "Use `foo()` here"

    def test_link(self):
        html = '<p><a href="https://note.com">note</a></p>'
        assert note_html_to_markdown(html) == "[note](https://note.com)"

    def test_consecutive_links(self):
        html = '<p><a href="https://a.com">a</a> and <a href="https://b.com"><em>b</em></a></p>'
        assert note_html_to_markdown(html) == "[a](https://a.com) and [*b*](https://b.com)"

    def test_link_without_href(self):
        assert note_html_to_markdown("<p><a>bare</a></p>") == "[bare]()"

    def test_image(self):
        html = '<figure><img src="https://example.com/a.png" alt="cat"></figure><p>after</p>'
        assert note_html_to_markdown(html) == "![cat](https://example.com/a.png)\n\nafter"


class TestBlocks:
    def test_paragraphs(self):
        assert note_html_to_markdown("<p>First</p><p>Second</p>") == "First\n\nSecond"

    def test_line_breaks(self):
        assert note_html_to_markdown("<p>one<br>two<br/>three</p>") == "one\ntwo\nthree"

    def test_unordered_list(self):
        assert note_html_to_markdown("<ul><li>one</li><li>two</li></ul>") == "- one\n- two"

    def test_ordered_list(self):
        assert note_html_to_markdown("<ol><li>first</li><li>second</li></ol>") == "1. first\n2. second"

    def test_nested_list(self):
        html = "<ul><li>a<ol><li>b</li><li>c</li></ol></li><li>d</li></ul><p>after</p>"
        assert note_html_to_markdown(html) == "- a\n  1. b\n  2. c\n- d\n\nafter"

    def test_unclosed_code_block(self):
        assert note_html_to_markdown("<pre><code>x = 1\n") == "```\nx = 1\n```"

    def test_code_block(self):
        html = "<pre><code>def hello():\n  print('hi')</code></pre>"
        assert note_html_to_markdown(html) == "```\ndef hello():\n  print('hi')\n```"

    def test_code_block_entities(self):
        assert note_html_to_markdown("<pre><code>&lt;div&gt;</code></pre>") == "```\n<div>\n```"

    def test_blockquote_prefixes_every_line(self):
        html = "<blockquote>line one<br>line two</blockquote>"
        assert note_html_to_markdown(html) == "> line one\n> line two"

    def test_blockquote_with_paragraphs(self):
        html = "<blockquote><p>a</p><p>b</p></blockquote><p>after</p>"
        assert note_html_to_markdown(html) == "> a\n>\n> b\n\nafter"

    def test_hr(self):
        result = note_html_to_markdown("<p>above</p><hr><p>below</p>")
        assert result == "above\n\n---\n\nbelow"


class TestEntities:
    def test_named_entities(self):
        result = note_html_to_markdown("<p>foo &amp; bar &lt; baz &gt; qux</p>")
        assert result == "foo & bar < baz > qux"

    def test_other_named_entity(self):
        assert note_html_to_markdown("<p>&copy; note</p>") == "© note"

    def test_numeric_char_ref(self):
        assert note_html_to_markdown("<p>&#169; copyright</p>") == "© copyright"

    def test_hex_char_ref(self):
        assert note_html_to_markdown("<p>&#x2019; curly</p>") == "’ curly"

    def test_out_of_range_char_ref(self):
        assert note_html_to_markdown("<p>&#99999999; x</p>") == "\ufffd x"
        assert note_html_to_markdown("<p>&#x110000; x</p>") == "\ufffd x"

    def test_surrogate_char_ref(self):
        assert note_html_to_markdown("<p>&#xD800; x</p>") == "\ufffd x"

    def test_non_breaking_space(self):
        assert note_html_to_markdown("<p>a&nbsp;b&#160;c</p>") == "a b c"


class TestConverterOutput:
    """Reading back what markdown_to_note produces."""

    def test_document(self):
        counter = itertools.count()
        text = "## Title\n\nSome **bold** text\n\n- a\n- b\n\n> quoted"
        html = convert(text, new_id=lambda: f"x{next(counter)}")
        assert note_html_to_markdown(html) == text


class TestEdgeCases:
    def test_empty_string(self):
        assert note_html_to_markdown("") == ""

    def test_none_input(self):
        assert note_html_to_markdown(None) == ""

    def test_plain_text_no_tags(self):
        assert note_html_to_markdown("just text") == "just text"

    def test_excessive_newlines_collapsed(self):
        result = note_html_to_markdown("<p>a</p><p></p><p></p><p>b</p>")
        assert "\n\n\n" not in result


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
