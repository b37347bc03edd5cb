#!/usr/bin/env python3
"""
Style Rules - Structural style checks over a positioned document tree.

Every rule has the same signature:

    rule(tree, content, preferred, sink) -> None

where `tree` is the document_tree root, `content` the raw markdown, `preferred`
the configured value for the rule (normalized here, never rejected) and `sink`
anything with a `warn(message, position)` method. A rule makes one pass over the
tree and the raw lines and returns once every diagnostic has been emitted.

Rules:
- blockquote-indentation: Warn when blockquotes are indented too much or too
  little. Options: a number, default "consistent" (the first blockquote sets the
  indentation every later one must use).

      <!-- Valid when set to 4, invalid when set to 2 -->
      >   Hello

      <!-- Valid when set to 2, invalid when set to 4 -->
      > Hello

- maximum-line-length: Warn when lines are too long. Options: a number, default
  80. Headings, tables and code cannot be wrapped and are ignored, as are links
  and images crossing the limit with no break point after them.

      <!-- Valid when set to 40 -->
      Alpha bravo charlie delta echo [foxtrot](./foxtrot.html).

      <!-- Invalid when set to 40 -->
      Alpha bravo charlie delta echo [foxtrot](./foxtrot.html) golf.
"""

import re
from typing import Any, Callable, Dict, FrozenSet, Optional, Sequence, Set

from document_tree import Node, NodeKind, Point, next_sibling, to_string, walk


DEFAULT_MAXIMUM_LINE_LENGTH = 80

# Content that cannot be reflowed, so its width is never a style problem
UNWRAPPABLE_KINDS = frozenset({NodeKind.HEADING, NodeKind.TABLE, NodeKind.CODE})
LINK_KINDS = frozenset({NodeKind.LINK, NodeKind.IMAGE})

_LEADING_SPACES = re.compile(r" +")
_BREAK_POINT = re.compile(r"[ \t]\S")


def plural(word: str, count: int) -> str:
    """Return `word` pluralized for `count`: plural('space', 2) -> 'spaces'."""
    return word if count == 1 else word + "s"


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def normalize_indentation(preferred: Any) -> Optional[int]:
    """Explicit indentation, or None to infer it from the first blockquote."""
    return preferred if _is_count(preferred) else None


def normalize_line_length(preferred: Any) -> int:
    """Explicit maximum line length, or the default for anything else."""
    return preferred if _is_count(preferred) else DEFAULT_MAXIMUM_LINE_LENGTH


# ============================================================================
# Consistency inference
# ============================================================================

class ConsistencyBaseline:
    """
    Preferred value that is either configured up front or seeded once.

    Attributes:
        value: Effective preferred value, None until seeded in consistency mode
    """

    def __init__(self, preferred: Optional[int] = None):
        self.value = preferred

    def compare(self, measured: int) -> Optional[int]:
        """
        Compare a measurement against the baseline.

        Args:
            measured: Value observed on a qualifying node

        Returns:
            preferred - measured, or None when this measurement seeded the baseline
        """
        if self.value is None:
            self.value = measured
            return None
        return self.value - measured


def measure_indentation(node: Node) -> int:
    """
    Indentation between a blockquote marker and its content.

    A space can belong to the markup or to the content, so the structural offset
    of the first child is combined with the leading spaces of its text.
    """
    head = node.children[0]
    indentation = head.start.column - node.start.column
    padding = _LEADING_SPACES.match(to_string(head))

    if padding:
        indentation += len(padding.group(0))

    return indentation


def blockquote_indentation(tree: Node, content: str, preferred: Any, sink) -> None:
    """
    Warn when a blockquote's content is indented differently than preferred.

    Args:
        tree: Document tree root
        content: Raw document text (unused, part of the rule signature)
        preferred: Preferred indentation; anything but a positive integer means
            "consistent"
        sink: Diagnostic sink with a warn(message, position) method
    """
    baseline = ConsistencyBaseline(normalize_indentation(preferred))

    for node, _, _ in walk(tree, [NodeKind.BLOCKQUOTE]):
        if node.is_generated or not node.children:
            continue

        head = node.children[0]
        if head.is_generated:
            continue

        diff = baseline.compare(measure_indentation(node))
        if not diff:
            continue

        word = "Add" if diff > 0 else "Remove"
        count = abs(diff)
        sink.warn(
            f"{word} {count} {plural('space', count)} between blockquote and content",
            head.start,
        )


# ============================================================================
# Line masking
# ============================================================================

class LineMask:
    """Line numbers (1-based) excluded from length checking. Union only."""

    def __init__(self):
        self._lines: Set[int] = set()

    def exclude(self, first: int, last: int) -> None:
        """Mask lines `first` through `last`, inclusive."""
        self._lines.update(range(first, last + 1))

    @property
    def lines(self) -> FrozenSet[int]:
        return frozenset(self._lines)

    def __contains__(self, line: object) -> bool:
        return line in self._lines

    def __len__(self) -> int:
        return len(self._lines)


def straddles(node: Node, threshold: int) -> bool:
    """True when the node starts at or before `threshold` and ends at or after it."""
    return node.start.column <= threshold <= node.end.column


def _break_point_after(node: Node, index: Optional[int], parent: Optional[Node]) -> bool:
    """Whether the line can be wrapped right after a link or image."""
    sibling = next_sibling(parent, index)

    if sibling is None or sibling.is_generated:
        return False

    if sibling.start.line != node.start.line:
        return False

    # Any non-text neighbour counts as a break point, even nested inline markup
    if sibling.kind is not NodeKind.TEXT or not sibling.value:
        return True

    first_line = sibling.value.split("\n", 1)[0]
    return _BREAK_POINT.search(first_line) is not None


def build_line_mask(tree: Node, threshold: int) -> LineMask:
    """
    Collect the lines a maximum-line-length check must skip.

    Headings, tables and code are masked over their whole span. Links and images
    are masked only when they cross `threshold` and nothing after them on the same
    line offers a place to wrap.

    Args:
        tree: Document tree root
        threshold: Maximum line length

    Returns:
        LineMask for the document
    """
    mask = LineMask()

    for node, index, parent in walk(tree):
        if node.is_generated:
            continue

        if node.kind in UNWRAPPABLE_KINDS:
            mask.exclude(node.start.line, node.end.line)
        elif node.kind in LINK_KINDS:
            if straddles(node, threshold) and not _break_point_after(node, index, parent):
                mask.exclude(node.start.line, node.end.line)

    return mask


# ============================================================================
# Line length scanning
# ============================================================================

def scan_line_lengths(lines: Sequence[str], mask: LineMask, threshold: int, sink) -> None:
    """
    Warn for every unmasked line longer than `threshold`.

    The reported column is one past the last character.
    """
    message = f"Line must be at most {threshold} characters"

    for number, line in enumerate(lines, start=1):
        if number in mask:
            continue

        if len(line) > threshold:
            sink.warn(message, Point(number, len(line) + 1))


def maximum_line_length(tree: Node, content: str, preferred: Any, sink) -> None:
    """
    Warn when lines are longer than the preferred maximum.

    Args:
        tree: Document tree root
        content: Raw document text
        preferred: Maximum line length; anything but a positive integer means 80
        sink: Diagnostic sink with a warn(message, position) method
    """
    threshold = normalize_line_length(preferred)
    mask = build_line_mask(tree, threshold)
    scan_line_lengths(content.split("\n"), mask, threshold, sink)


# Evaluation order is the insertion order
RULES: Dict[str, Callable[[Node, str, Any, Any], None]] = {
    "blockquote-indentation": blockquote_indentation,
    "maximum-line-length": maximum_line_length,
}
