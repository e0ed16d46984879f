#!/usr/bin/env python3
"""
Markdown to note.com Editor HTML Converter

Converts a small, line-oriented markdown dialect into the HTML fragment that
note.com's rich-text editor stores as an article body.

The editor tracks every block by a client-side identity, so each emitted
block element carries the same UUID twice: name="<id>" id="<id>".

Supported syntax:
- Code fences: ```code``` (content is escaped, never formatted)
- Headings: ## H2, ### H3
- Blockquotes: > quote (consecutive lines joined with <br>)
- Unordered lists: - item or * item
- Ordered lists: 1. item
- Horizontal rules: ---, *** or ___
- Paragraphs: everything else, consecutive lines joined with <br>
- Bold: **text** or __text__
- Italic: *text* or _text_ (not inside words)
- Inline code: `code`
- Links: [text](url)

Anything else (tables, nested lists, raw HTML, # H1) is plain paragraph text.

Usage as module:
    from markdown_to_note import convert
    html = convert("## Hello **world**")

Usage as CLI:
    python markdown_to_note.py "## Hello **world**"
    echo "## Hello" | python markdown_to_note.py
"""

import enum
import html as html_module
import logging
import re
import sys
import uuid
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_DOCUMENT_CHARS = 1_000_000


class DocumentTooLargeError(ValueError):
    """Raised when the input exceeds the configured character limit."""

    def __init__(self, length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(f"Document too large: {length} characters (limit {limit})")


# ========== Identifiers ==========

def new_identifier() -> str:
    """Return a random UUID-v4 string for a block's name/id attributes."""
    return str(uuid.uuid4())


# ========== Data Model ==========

class BlockKind(enum.Enum):
    PARAGRAPH = "paragraph"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    BLOCKQUOTE = "blockquote"
    UNORDERED_LIST = "unordered_list"
    ORDERED_LIST = "ordered_list"
    CODE_BLOCK = "code_block"
    HORIZONTAL_RULE = "horizontal_rule"


@dataclass(frozen=True)
class BlockNode:
    """One block of the output document."""

    kind: BlockKind
    raw_lines: Tuple[str, ...]
    identifier: str


# ========== Line Classification ==========

class LineKind(enum.Enum):
    FENCE = "fence"
    HEADING2 = "heading2"
    HEADING3 = "heading3"
    QUOTE = "quote"
    BULLET = "bullet"
    ORDERED = "ordered"
    RULE = "rule"
    TEXT = "text"
    BLANK = "blank"


# Checked top to bottom against the trimmed line; first match wins.
LINE_PATTERNS: Tuple[Tuple[LineKind, "re.Pattern[str]"], ...] = (
    (LineKind.FENCE, re.compile(r"^```")),
    (LineKind.HEADING2, re.compile(r"^## (?P<text>.+)$")),
    (LineKind.HEADING3, re.compile(r"^### (?P<text>.+)$")),
    (LineKind.QUOTE, re.compile(r"^>(?: (?P<text>.*))?$")),
    (LineKind.BULLET, re.compile(r"^[-*]\s+(?P<text>.*)$")),
    (LineKind.ORDERED, re.compile(r"^\d+\.\s+(?P<text>.*)$")),
    (LineKind.RULE, re.compile(r"^(?:---|\*\*\*|___)$")),
)


def classify_line(line: str) -> Tuple[LineKind, str]:
    """
    Classify one source line.

    Returns:
        (kind, text) where text is the line's content with its block marker
        removed. For FENCE, RULE and BLANK the text is the trimmed line.
    """
    stripped = line.strip()
    if not stripped:
        return LineKind.BLANK, ""

    for kind, pattern in LINE_PATTERNS:
        match = pattern.match(stripped)
        if match:
            if "text" in pattern.groupindex:
                return kind, (match.group("text") or "").strip()
            return kind, stripped

    return LineKind.TEXT, stripped


# ========== Block Segmenter ==========

# Line kinds that open a block which keeps absorbing lines of the same kind.
_RUN_BLOCKS = {
    LineKind.QUOTE: BlockKind.BLOCKQUOTE,
    LineKind.BULLET: BlockKind.UNORDERED_LIST,
    LineKind.ORDERED: BlockKind.ORDERED_LIST,
    LineKind.TEXT: BlockKind.PARAGRAPH,
}

# Line kinds that form a complete block on their own.
_SINGLE_LINE_BLOCKS = {
    LineKind.HEADING2: BlockKind.HEADING2,
    LineKind.HEADING3: BlockKind.HEADING3,
    LineKind.RULE: BlockKind.HORIZONTAL_RULE,
}

_CONTINUATION = {block: line for line, block in _RUN_BLOCKS.items()}


class _Segmenter:
    """
    Single forward pass over the input lines.

    The state is the block kind currently being accumulated, or None when
    idle. Each line either extends the open block, closes it, or both closes
    it and opens a new one.
    """

    def __init__(self, new_id: Callable[[], str]):
        self._new_id = new_id
        self._state: Optional[BlockKind] = None
        self._buffer: List[str] = []
        self.nodes: List[BlockNode] = []

    def _open(self, kind: BlockKind) -> None:
        self._state = kind
        self._buffer = []

    def _emit(self, kind: BlockKind, lines: List[str]) -> None:
        self.nodes.append(BlockNode(kind, tuple(lines), self._new_id()))

    def _close(self) -> None:
        if self._state is not None:
            self._emit(self._state, self._buffer)
        self._state = None
        self._buffer = []

    def feed(self, line: str) -> None:
        if self._state is BlockKind.CODE_BLOCK:
            if classify_line(line)[0] is LineKind.FENCE:
                self._close()
            else:
                self._buffer.append(line)
            return

        kind, _ = classify_line(line)
        if self._state is not None and _CONTINUATION[self._state] is kind:
            self._buffer.append(line.strip())
            return

        self._close()
        if kind is LineKind.BLANK:
            return
        if kind is LineKind.FENCE:
            self._open(BlockKind.CODE_BLOCK)
        elif kind in _SINGLE_LINE_BLOCKS:
            self._emit(_SINGLE_LINE_BLOCKS[kind], [line.strip()])
        else:
            self._open(_RUN_BLOCKS[kind])
            self._buffer.append(line.strip())

    def finish(self) -> List[BlockNode]:
        self._close()
        return self.nodes


def segment(text: str, new_id: Callable[[], str] = new_identifier) -> List[BlockNode]:
    """
    Split text into an ordered list of block nodes.

    Args:
        text: Source text; lines are split on "\\n" only
        new_id: Identifier factory, called once per emitted node

    Returns:
        Block nodes in document order (empty for blank input)
    """
    segmenter = _Segmenter(new_id)
    if text:
        for line in text.split("\n"):
            segmenter.feed(line)
    return segmenter.finish()


# ========== Inline Formatter ==========

# Bold and italic match a link target "](url)" first and leave it untouched,
# so delimiters inside a URL never end up in the href.
_LINK_TARGET = r"(?P<target>\]\([^)\s\"]+\))"
_BOLD_RE = re.compile(_LINK_TARGET + r"|\*\*(.+?)\*\*|__(.+?)__")
# Word characters are ASCII only, so delimiters next to kana or kanji still count.
_ITALIC_RE = re.compile(
    _LINK_TARGET + r"|(?<![\w*])\*([^*\n]+?)\*(?![\w*])|(?<![\w_])_([^_\n]+?)_(?![\w_])",
    re.ASCII,
)
_CODE_RE = re.compile(r"`([^`\n]+?)`")
_LINK_RE = re.compile(r"\[([^\]\n]+)\]\(([^)\s\"]+)\)")


def escape_html(text: str) -> str:
    """Escape &, < and > (quotes are left alone)."""
    return html_module.escape(text, quote=False)


def _wrapper(tag: str) -> Callable[["re.Match[str]"], str]:
    def replace(match: "re.Match[str]") -> str:
        if match.group("target"):
            return match.group("target")
        return f"<{tag}>{match.group(2) or match.group(3)}</{tag}>"
    return replace


def _bold(text: str) -> str:
    return _BOLD_RE.sub(_wrapper("strong"), text)


def _italic(text: str) -> str:
    return _ITALIC_RE.sub(_wrapper("em"), text)


def _code(text: str) -> str:
    return _CODE_RE.sub(r"<code>\1</code>", text)


def _link(text: str) -> str:
    return _LINK_RE.sub(r'<a href="\2">\1</a>', text)


# Order matters: escaping first, so later steps only ever see entities.
INLINE_PIPELINE: Tuple[Callable[[str], str], ...] = (
    escape_html,
    _bold,
    _italic,
    _code,
    _link,
)


def format_inline(raw: str) -> str:
    """Escape raw text and apply inline markup in fixed order."""
    result = raw
    for step in INLINE_PIPELINE:
        result = step(result)
    return result


# ========== Rendering ==========

def _attrs(node: BlockNode) -> str:
    return f'name="{node.identifier}" id="{node.identifier}"'


def _content(line: str) -> str:
    return classify_line(line)[1]


def _format_lines(lines: Tuple[str, ...]) -> str:
    """Format lines as one unit, with <br> at the original line breaks."""
    return format_inline("\n".join(lines)).replace("\n", "<br>")


def render_block(node: BlockNode) -> str:
    """Render a single block node to HTML."""
    attrs = _attrs(node)
    kind = node.kind

    if kind is BlockKind.PARAGRAPH:
        return f"<p {attrs}>{_format_lines(node.raw_lines)}</p>"

    if kind in (BlockKind.HEADING2, BlockKind.HEADING3):
        tag = "h2" if kind is BlockKind.HEADING2 else "h3"
        return f"<{tag} {attrs}>{format_inline(_content(node.raw_lines[0]))}</{tag}>"

    if kind is BlockKind.BLOCKQUOTE:
        lines = tuple(_content(line) for line in node.raw_lines)
        return f"<blockquote {attrs}>{_format_lines(lines)}</blockquote>"

    if kind in (BlockKind.UNORDERED_LIST, BlockKind.ORDERED_LIST):
        tag = "ul" if kind is BlockKind.UNORDERED_LIST else "ol"
        items = "".join(f"<li>{format_inline(_content(line))}</li>" for line in node.raw_lines)
        return f"<{tag} {attrs}>{items}</{tag}>"

    if kind is BlockKind.CODE_BLOCK:
        code = escape_html("\n".join(node.raw_lines))
        return f"<pre {attrs}><code>{code}</code></pre>"

    if kind is BlockKind.HORIZONTAL_RULE:
        return f"<hr {attrs}>"

    raise ValueError(f"Unknown block kind: {kind}")


def iter_rendered(nodes: List[BlockNode]) -> Iterator[str]:
    for node in nodes:
        yield render_block(node)


# ========== Entry Point ==========

def convert(
    text: Optional[str],
    new_id: Optional[Callable[[], str]] = None,
    max_chars: int = MAX_DOCUMENT_CHARS,
) -> str:
    """
    Convert markdown-dialect text to note.com editor HTML.

    Args:
        text: Source text (None is treated as empty)
        new_id: Identifier factory; defaults to random UUID-v4 strings
        max_chars: Largest accepted input length

    Returns:
        Concatenated block HTML with no separators ("" for blank input)

    Raises:
        DocumentTooLargeError: If text is longer than max_chars

    Example:
        >>> ids = iter(["a", "b"])
        >>> convert("## Hi", new_id=lambda: next(ids))
        '<h2 name="a" id="a">Hi</h2>'
    """
    if not text:
        return ""
    if len(text) > max_chars:
        raise DocumentTooLargeError(len(text), max_chars)

    nodes = segment(text, new_id or new_identifier)
    logger.debug(f"Segmented {len(text)} characters into {len(nodes)} blocks")
    return "".join(iter_rendered(nodes))


def main():
    """CLI entry point for testing/debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Convert markdown to note.com editor HTML"
    )
    parser.add_argument(
        "markdown",
        nargs="?",
        help="Markdown text to convert (reads from stdin if not provided)"
    )

    args = parser.parse_args()

    if args.markdown:
        text = args.markdown
    elif not sys.stdin.isatty():
        text = sys.stdin.read()
    else:
        parser.print_help()
        sys.exit(1)

    try:
        print(convert(text))
    except DocumentTooLargeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
