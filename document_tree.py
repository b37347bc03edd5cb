#!/usr/bin/env python3
"""
Document Tree Model

Typed node tree shared by the style rules. Every parsed document becomes a tree
of Nodes carrying 1-based source positions; rules only read it.

Key invariant: a node without a position (or explicitly flagged as generated)
has no real source span. Rules must treat it as absent for span-based checks,
but its children are still visited.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple


class NodeKind(Enum):
    """Node kinds the style rules distinguish. Everything else is OTHER."""
    ROOT = "root"
    BLOCKQUOTE = "blockquote"
    HEADING = "heading"
    TABLE = "table"
    CODE = "code"
    LINK = "link"
    IMAGE = "image"
    TEXT = "text"
    OTHER = "other"


class MalformedPositionError(ValueError):
    """Raised when a non-generated node has no usable start or end point."""
    pass


@dataclass(frozen=True)
class Point:
    """
    A place in the source text.

    Attributes:
        line: Line number (1-based)
        column: Column number (1-based)
    """
    line: int
    column: int


@dataclass(frozen=True)
class Position:
    """
    Source span of a node.

    Attributes:
        start: First character of the node
        end: One past the last character of the node
    """
    start: Point
    end: Point


@dataclass
class Node:
    """
    A node in the document tree.

    Attributes:
        kind: Closed node kind used by the rules
        children: Ordered child nodes
        position: Source span, None for generated nodes
        value: Literal content (text, code, image alt), if any
        name: Parser-specific type name (e.g. "paragraph", "fence")
        generated: Force the node to be treated as synthetic
    """
    kind: NodeKind
    children: List["Node"] = field(default_factory=list)
    position: Optional[Position] = None
    value: Optional[str] = None
    name: str = ""
    generated: bool = False

    @property
    def is_generated(self) -> bool:
        """True when the node has no meaningful source span."""
        return self.generated or self.position is None

    @property
    def start(self) -> Point:
        return _checked_point(self, "start")

    @property
    def end(self) -> Point:
        return _checked_point(self, "end")


def _checked_point(node: Node, which: str) -> Point:
    label = node.name or node.kind.value

    if node.position is None:
        raise MalformedPositionError(f"Node '{label}' has no position")

    point = getattr(node.position, which, None)
    if point is None:
        raise MalformedPositionError(f"Node '{label}' has no {which} point")

    for attribute in ("line", "column"):
        number = getattr(point, attribute, None)
        # bool is an int subclass and never a valid coordinate
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise MalformedPositionError(
                f"Node '{label}' has invalid {which} {attribute}: {number!r}"
            )

    return point


def walk(
    root: Node,
    kinds: Optional[Iterable[NodeKind]] = None,
) -> Iterator[Tuple[Node, Optional[int], Optional[Node]]]:
    """
    Walk the tree in document (pre-)order.

    Every node is visited exactly once, parents before children. Generated
    nodes are yielded like any other node; filtering them is up to the caller.

    Args:
        root: Tree root
        kinds: Optional node kinds to yield (all nodes are still traversed)

    Yields:
        (node, index in parent, parent) tuples; index and parent are None for root

    Example:
        >>> tree = Node(NodeKind.ROOT, [Node(NodeKind.TEXT, value="a")])
        >>> [node.kind for node, _, _ in walk(tree, [NodeKind.TEXT])]
        [<NodeKind.TEXT: 'text'>]
    """
    wanted = frozenset(kinds) if kinds is not None else None
    stack: List[Tuple[Node, Optional[int], Optional[Node]]] = [(root, None, None)]

    while stack:
        node, index, parent = stack.pop()

        if wanted is None or node.kind in wanted:
            yield node, index, parent

        for child_index in range(len(node.children) - 1, -1, -1):
            stack.append((node.children[child_index], child_index, node))


def next_sibling(parent: Optional[Node], index: Optional[int]) -> Optional[Node]:
    """Return the node following position `index` in `parent`, if any."""
    if parent is None or index is None or index + 1 >= len(parent.children):
        return None
    return parent.children[index + 1]


def to_string(node: Node) -> str:
    """Text content of a node: its value, or its children's text concatenated."""
    if node.value is not None:
        return node.value
    return "".join(to_string(child) for child in node.children)
