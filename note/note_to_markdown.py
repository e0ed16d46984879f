#!/usr/bin/env python3
"""
note.com Article HTML to Markdown Converter

Converts the HTML that note.com returns for article bodies and comments back
to markdown, so fetched content can be read as plain text. This is the
reverse of markdown_to_note.py.

Handles the editor's HTML subset:
- <h1>..<h4> → # .. ####
- <strong>, <b> → **bold**
- <em>, <i> → *italic*
- <code> → `code`
- <pre> → ```code block```
- <a href="url"> → [text](url)
- <ul>/<ol> + <li> → - item / 1. item (nested lists indented)
- <hr> → ---
- <blockquote> → > quote (every line prefixed)
- <img src alt> → ![alt](src)
- <br> → newline

The editor's name/id attributes are dropped. Unknown tags keep their text.

Usage as module:
    from note_to_markdown import note_html_to_markdown
    md = note_html_to_markdown('<h2 name="x" id="x">Hello</h2>')

Usage as CLI:
    python note_to_markdown.py '<h2>Hello</h2>'
    echo '<p>...</p>' | python note_to_markdown.py
"""

import html as html_module
import re
import sys
from html.parser import HTMLParser
from typing import List, Optional

HEADING_TAGS = ("h1", "h2", "h3", "h4")

# Symmetric inline markers, written on both the start and end tag.
INLINE_MARKS = {"strong": "**", "b": "**", "em": "*", "i": "*"}

# What an end tag leaves behind when it closes a block.
BLOCK_ENDINGS = dict.fromkeys(HEADING_TAGS + ("p", "figure"), "\n\n")


def _unescape(reference: str) -> str:
    # html.unescape maps out-of-range and surrogate code points to U+FFFD.
    return html_module.unescape(reference).replace("\xa0", " ")


class NoteToMarkdownConverter(HTMLParser):
    """Convert note.com article HTML to markdown."""

    def __init__(self):
        super().__init__(convert_charrefs=False)
        self.output: List[str] = []
        self.lists: List[Optional[int]] = []  # None for <ul>, item count for <ol>
        self.hrefs: List[str] = []
        self.pre_start: Optional[int] = None
        self.quote_start: Optional[int] = None

    # ========== Tags ==========

    def handle_starttag(self, tag, attrs):
        attrs = dict(attrs)

        if tag in INLINE_MARKS:
            self.output.append(INLINE_MARKS[tag])
        elif tag in HEADING_TAGS:
            self.output.append("#" * int(tag[1]) + " ")
        elif tag == "code":
            if self.pre_start is None:
                self.output.append("`")
        elif tag == "pre":
            self.pre_start = len(self.output)
        elif tag == "a":
            self.hrefs.append(attrs.get("href") or "")
            self.output.append("[")
        elif tag in ("ul", "ol"):
            self.lists.append(0 if tag == "ol" else None)
        elif tag == "li":
            self._start_item()
        elif tag == "hr":
            self.output.append("\n---\n\n")
        elif tag == "blockquote":
            self.quote_start = len(self.output)
        elif tag == "br":
            self.output.append("\n")
        elif tag == "img" and attrs.get("src"):
            self.output.append(f"![{attrs.get('alt') or ''}]({attrs['src']})")

    def handle_endtag(self, tag):
        if tag in INLINE_MARKS:
            self.output.append(INLINE_MARKS[tag])
        elif tag == "code":
            if self.pre_start is None:
                self.output.append("`")
        elif tag == "pre":
            self._close_pre()
        elif tag == "a":
            href = self.hrefs.pop() if self.hrefs else ""
            self.output.append(f"]({href})")
        elif tag in ("ul", "ol"):
            if self.lists:
                self.lists.pop()
            if not self.lists:
                self.output.append("\n")
        elif tag == "li":
            self._end_line()
        elif tag == "blockquote":
            self._close_quote()
        elif tag in BLOCK_ENDINGS:
            self.output.append(BLOCK_ENDINGS[tag])

    def _end_line(self):
        if self.output and not self.output[-1].endswith("\n"):
            self.output.append("\n")

    def _start_item(self):
        self._end_line()
        indent = "  " * max(0, len(self.lists) - 1)
        if self.lists and self.lists[-1] is not None:
            self.lists[-1] += 1
            marker = f"{self.lists[-1]}."
        else:
            marker = "-"
        self.output.append(f"{indent}{marker} ")

    def _take_from(self, start: int) -> str:
        """Remove and return everything written since start."""
        body = "".join(self.output[start:])
        del self.output[start:]
        return body

    def _close_pre(self):
        if self.pre_start is None:
            return
        code = self._take_from(self.pre_start).rstrip("\n")
        self.pre_start = None
        self.output.append(f"```\n{code}\n```\n\n")

    def _close_quote(self):
        if self.quote_start is None:
            return
        body = self._take_from(self.quote_start).strip()
        self.quote_start = None
        quoted = "\n".join(f"> {line}".rstrip() for line in body.split("\n"))
        self.output.append(f"{quoted}\n\n")

    # ========== Text ==========

    def handle_data(self, data):
        self.output.append(data)

    def handle_entityref(self, name):
        self.output.append(_unescape(f"&{name};"))

    def handle_charref(self, name):
        self.output.append(_unescape(f"&#{name};"))

    def get_markdown(self) -> str:
        self._close_pre()
        self._close_quote()
        result = re.sub(r"\n{3,}", "\n\n", "".join(self.output))
        return result.strip()


def note_html_to_markdown(html: str) -> str:
    """
    Convert note.com article HTML to markdown.

    Args:
        html: Article body or comment HTML

    Returns:
        Markdown string ("" for empty input)
    """
    if not html:
        return ""

    converter = NoteToMarkdownConverter()
    converter.feed(html)
    converter.close()
    return converter.get_markdown()


def main():
    """CLI entry point for testing/debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Convert note.com article HTML to markdown"
    )
    parser.add_argument(
        "html",
        nargs="?",
        help="HTML to convert (reads from stdin if not provided)",
    )

    args = parser.parse_args()

    if args.html:
        text = args.html
    elif not sys.stdin.isatty():
        text = sys.stdin.read()
    else:
        parser.print_help()
        sys.exit(1)

    print(note_html_to_markdown(text))


if __name__ == "__main__":
    main()
