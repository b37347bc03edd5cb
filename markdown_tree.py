#!/usr/bin/env python3
"""
Markdown Parser and Positioned Tree Builder

This module parses markdown with markdown-it-py and converts the token stream
into a document_tree.Node tree carrying 1-based (line, column) positions.

Key Features:
- Parse markdown to tokens using markdown-it-py (CommonMark + GFM tables)
- Cache parsed tokens for repeated runs over the same document
- Block positions from token line maps, columns from the raw text
- Inline positions (links, images, text) located by a forward scan of the source
- Soft breaks folded into text so the sibling after a link is one text node

Text whose source differs from its content (backslash escapes, entities) is
anchored where the scan stands and ends at the next located node, or at the end
of its block. Other nodes that cannot be located are emitted without a position
and are treated as generated by the rules.

Columns count characters, as mdast positions do: a tab is one column, so
`>\\tHello` puts the paragraph at column 3 even though CommonMark expands the
tab to the next stop of 4 when parsing.
"""

import re
from bisect import bisect_right
from typing import Dict, List, Optional, Sequence, Tuple

from markdown_it import MarkdownIt
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode

from document_tree import Node, NodeKind, Point, Position


_BLOCK_KINDS = {
    "blockquote": NodeKind.BLOCKQUOTE,
    "heading": NodeKind.HEADING,
    "table": NodeKind.TABLE,
    "fence": NodeKind.CODE,
    "code_block": NodeKind.CODE,
}

_INLINE_KINDS = {
    "link": NodeKind.LINK,
    "image": NodeKind.IMAGE,
    "text": NodeKind.TEXT,
    "softbreak": NodeKind.TEXT,
}

# Container blocks whose markers prefix the lines of their children
_CONTAINERS = ("blockquote", "list_item")

_QUOTE_MARKER = re.compile(r"[ \t]*>")
_LIST_MARKER = re.compile(r"[ \t]*(?:[-+*]|\d{1,9}[.)])")
_INDENT = re.compile(r"[ \t]*")


class MarkdownParser:
    """
    Markdown document parser with token caching.

    Avoids re-parsing the same document when the caller supplies a cache key.
    """

    def __init__(self):
        """Initialize parser with a markdown-it-py instance."""
        self._md = MarkdownIt("commonmark").enable(["table", "strikethrough"])
        self._cache: Dict[str, List[Token]] = {}

    def parse_markdown(self, text: str, cache_key: Optional[str] = None) -> List[Token]:
        """
        Parse markdown text to tokens.

        Args:
            text: Markdown text to parse
            cache_key: Optional key for caching parsed tokens

        Returns:
            List of markdown-it-py tokens

        Example:
            >>> parser = MarkdownParser()
            >>> tokens = parser.parse_markdown("# Title\\n\\nParagraph text.")
            >>> len(tokens) > 0
            True
        """
        if cache_key and cache_key in self._cache:
            return self._cache[cache_key]

        tokens = self._md.parse(text)

        if cache_key:
            self._cache[cache_key] = tokens

        return tokens

    def clear_cache(self):
        """Clear the token cache."""
        self._cache.clear()


# Global parser instance for module-level functions
_parser = MarkdownParser()


def parse_markdown(text: str, cache_key: Optional[str] = None) -> List[Token]:
    """
    Parse markdown text to tokens (module-level function).

    Args:
        text: Markdown text to parse
        cache_key: Optional key for caching parsed tokens

    Returns:
        List of markdown-it-py tokens
    """
    return _parser.parse_markdown(text, cache_key)


def build_tree(tokens: List[Token], text: str) -> Node:
    """
    Convert markdown-it-py tokens into a positioned document tree.

    Args:
        tokens: Tokens produced by parse_markdown() for `text`
        text: The raw markdown the tokens were parsed from

    Returns:
        Root Node of the document

    Example:
        >>> text = "> Hello"
        >>> root = build_tree(parse_markdown(text), text)
        >>> quote = root.children[0]
        >>> (quote.start.column, quote.children[0].start.column)
        (1, 3)
    """
    return _TreeBuilder(text).build(SyntaxTreeNode(tokens))


def parse_document(text: str, cache_key: Optional[str] = None) -> Node:
    """
    Parse markdown text straight to a positioned document tree.

    Args:
        text: Markdown text to parse
        cache_key: Optional key for caching parsed tokens

    Returns:
        Root Node of the document
    """
    return build_tree(parse_markdown(text, cache_key), text)


class _TreeBuilder:
    """Walks a SyntaxTreeNode tree and emits positioned Nodes for one text."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split("\n")
        self.line_starts = [0]
        for line in self.lines[:-1]:
            self.line_starts.append(self.line_starts[-1] + len(line) + 1)

    def build(self, root: SyntaxTreeNode) -> Node:
        children = self._blocks(root.children, (), 0, len(self.text))
        end = Point(len(self.lines), len(self.lines[-1]) + 1)
        return Node(NodeKind.ROOT, children, Position(Point(1, 1), end), name="root")

    def _blocks(
        self,
        nodes: Sequence[SyntaxTreeNode],
        containers: Tuple[Tuple[str, int], ...],
        start: int,
        limit: int,
    ) -> List[Node]:
        result: List[Node] = []
        for node in nodes:
            if node.type == "inline":
                # mdast has no inline wrapper: its children belong to the block
                cursor, end = start, limit
                if node.map and node.map[0] < len(self.lines):
                    span_start, end = self._line_span(node.map)
                    cursor = max(cursor, span_start)
                children, _ = self._inline(node.children, cursor, end)
                result.extend(children)
            else:
                result.append(self._block(node, containers, start, limit))
        return result

    def _block(
        self,
        node: SyntaxTreeNode,
        containers: Tuple[Tuple[str, int], ...],
        start: int,
        limit: int,
    ) -> Node:
        kind = _BLOCK_KINDS.get(node.type, NodeKind.OTHER)
        value = node.content if kind is NodeKind.CODE else None

        # Lone "\r" line endings make markdown-it see lines that split("\n") does not
        if not node.map or node.map[0] >= len(self.lines):
            children = self._blocks(node.children, containers, start, limit)
            return Node(kind, children, None, value, node.type, generated=True)

        first, last = node.map
        last = min(max(last, first + 1), len(self.lines))
        line = self.lines[first]
        column = self._block_column(node.type, line, self._skip_containers(line, first, containers))

        if node.type in _CONTAINERS:
            containers = containers + ((node.type, first),)

        start = self.line_starts[first] + column
        limit = self.line_starts[last - 1] + len(self.lines[last - 1])
        children = self._blocks(node.children, containers, start, limit)

        position = Position(
            Point(first + 1, column + 1),
            Point(last, len(self.lines[last - 1]) + 1),
        )
        return Node(kind, children, position, value, node.type)

    def _skip_containers(self, line: str, line_number: int, containers) -> int:
        """Offset in `line` just past the markers of the enclosing containers."""
        offset = 0
        for container, first in containers:
            if container == "blockquote":
                match = _QUOTE_MARKER.match(line, offset)
            elif line_number == first:
                match = _LIST_MARKER.match(line, offset)
            else:
                match = None
            if match:
                offset = match.end()
        return offset

    @staticmethod
    def _block_column(node_type: str, line: str, offset: int) -> int:
        if node_type == "blockquote":
            match = _QUOTE_MARKER.match(line, offset)
            if match:
                return match.end() - 1
        content = _INDENT.match(line, offset).end()
        return content if content < len(line) else offset

    def _line_span(self, line_map: Sequence[int]) -> Tuple[int, int]:
        first, last = line_map
        last = min(max(last, first + 1), len(self.lines))
        return (
            self.line_starts[first],
            self.line_starts[last - 1] + len(self.lines[last - 1]),
        )

    def _point(self, offset: int) -> Point:
        index = bisect_right(self.line_starts, offset) - 1
        return Point(index + 1, offset - self.line_starts[index] + 1)

    def _span(self, start: int, end: int) -> Position:
        return Position(self._point(start), self._point(end))

    def _inline(
        self, nodes: Sequence[SyntaxTreeNode], cursor: int, limit: int
    ) -> Tuple[List[Node], int]:
        result: List[Node] = []
        # Text the scan could not find, waiting for the next located node to end it
        pending: List[Tuple[int, int]] = []
        for node in nodes:
            anchor = cursor
            converted, cursor = self._inline_node(node, cursor, limit)
            if converted.position is None and node.type == "text":
                pending.append((len(result), anchor))
            elif converted.position is not None and pending:
                self._anchor(result, pending, converted.position.start)
                pending = []
            result.append(converted)
        if pending:
            self._anchor(result, pending, self._point(limit))
        return _merge_text(result), cursor

    def _anchor(self, result: List[Node], pending: List[Tuple[int, int]], end: Point) -> None:
        for index, offset in pending:
            node = result[index]
            result[index] = Node(node.kind, [], Position(self._point(offset), end), node.value, node.name)

    def _inline_node(
        self, node: SyntaxTreeNode, cursor: int, limit: int
    ) -> Tuple[Node, int]:
        kind = _INLINE_KINDS.get(node.type, NodeKind.OTHER)

        if node.type == "link":
            return self._link(node, cursor, limit)

        if node.type == "image":
            return self._image(node, cursor, limit)

        if node.type in ("softbreak", "hardbreak"):
            value = "\n" if node.type == "softbreak" else None
            index = self.text.find("\n", cursor, limit)
            if index < 0:
                return Node(kind, [], None, value, node.type), cursor
            return Node(kind, [], self._span(index, index + 1), value, node.type), index + 1

        if node.children:
            # Emphasis, strong, strikethrough: markup on both sides
            markup = node.markup
            start = self.text.find(markup, cursor, limit) if markup else -1
            if start < 0:
                children, _ = self._inline(node.children, cursor, limit)
                return Node(kind, children, None, None, node.type), cursor
            children, inner = self._inline(node.children, start + len(markup), limit)
            close = self.text.find(markup, inner, limit)
            end = close + len(markup) if close >= 0 else inner
            return Node(kind, children, self._span(start, end), None, node.type), end

        if node.type == "code_inline":
            markup = node.markup
            start = self.text.find(markup, cursor, limit)
            close = self.text.find(markup, start + len(markup), limit) if start >= 0 else -1
            if close < 0:
                return Node(kind, [], None, node.content, node.type), cursor
            end = close + len(markup)
            return Node(kind, [], self._span(start, end), node.content, node.type), end

        content = node.content
        start = self.text.find(content, cursor, limit) if content else -1
        if start < 0:
            # Escapes and entities: the source is never shorter than the content
            return Node(kind, [], None, content, node.type), min(cursor + len(content), limit)
        end = start + len(content)
        return Node(kind, [], self._span(start, end), content, node.type), end

    def _link(self, node: SyntaxTreeNode, cursor: int, limit: int) -> Tuple[Node, int]:
        if node.markup == "autolink":
            start = self.text.find("<", cursor, limit)
            close = self.text.find(">", start, limit) if start >= 0 else -1
            if close < 0:
                children, _ = self._inline(node.children, cursor, limit)
                return Node(NodeKind.LINK, children, None, None, node.type), cursor
            children, _ = self._inline(node.children, start + 1, close)
            end = close + 1
            return Node(NodeKind.LINK, children, self._span(start, end), None, node.type), end

        start = self.text.find("[", cursor, limit)
        close = _matching_bracket(self.text, start, limit) if start >= 0 else None
        if close is None:
            children, _ = self._inline(node.children, cursor, limit)
            return Node(NodeKind.LINK, children, None, None, node.type), cursor

        children, _ = self._inline(node.children, start + 1, close)
        end = _skip_destination(self.text, close + 1, limit)
        return Node(NodeKind.LINK, children, self._span(start, end), None, node.type), end

    def _image(self, node: SyntaxTreeNode, cursor: int, limit: int) -> Tuple[Node, int]:
        # Like mdast, images are leaves: the alt text is the value
        start = self.text.find("![", cursor, limit)
        close = _matching_bracket(self.text, start + 1, limit) if start >= 0 else None
        if close is None:
            return Node(NodeKind.IMAGE, [], None, node.content, node.type), cursor

        end = _skip_destination(self.text, close + 1, limit)
        return Node(NodeKind.IMAGE, [], self._span(start, end), node.content, node.type), end


def _matching_bracket(text: str, start: int, limit: int) -> Optional[int]:
    """Index of the `]` closing the `[` at `start`, honouring nesting and escapes."""
    depth = 0
    index = start
    while index < limit:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


def _skip_destination(text: str, index: int, limit: int) -> int:
    """Offset just past a link destination `(...)` or reference label `[...]`."""
    if index < limit and text[index] == "(":
        depth = 0
        while index < limit:
            char = text[index]
            if char == "\\":
                index += 2
                continue
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth == 0:
                    return index + 1
            index += 1
        return limit

    if index < limit and text[index] == "[":
        close = text.find("]", index, limit)
        if close >= 0:
            return close + 1

    return index


def _merge_text(nodes: List[Node]) -> List[Node]:
    """Join adjacent text nodes (including folded soft breaks) into one."""
    merged: List[Node] = []
    for node in nodes:
        previous = merged[-1] if merged else None
        if previous is None or previous.kind is not NodeKind.TEXT or node.kind is not NodeKind.TEXT:
            merged.append(node)
            continue

        first = previous.position or node.position
        last = node.position or previous.position
        position = Position(first.start, last.end) if first else None
        value = (previous.value or "") + (node.value or "")
        merged[-1] = Node(NodeKind.TEXT, [], position, value, "text")
    return merged


if __name__ == '__main__':
    # Example usage
    import sys

    if len(sys.argv) < 2:
        print("Usage: markdown_tree.py <markdown_file>")
        print("\nParses markdown file and displays the positioned node tree.")
        sys.exit(1)

    with open(sys.argv[1], 'r', encoding='utf-8') as f:
        source = f.read()

    def _show(node: Node, depth: int = 0) -> None:
        if node.is_generated:
            span = "generated"
        else:
            span = f"{node.start.line}:{node.start.column}-{node.end.line}:{node.end.column}"
        print(f"{'  ' * depth}{node.name or node.kind.value} [{span}]")
        for child in node.children:
            _show(child, depth + 1)

    _show(parse_document(source))
