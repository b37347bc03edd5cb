#!/usr/bin/env python3
"""
Test suite for document_tree module.

Tests node positions, generated-node handling, malformed position detection,
pre-order traversal and text extraction.
"""

import pytest
from document_tree import (
    MalformedPositionError,
    Node,
    NodeKind,
    Point,
    Position,
    next_sibling,
    to_string,
    walk,
)


def span(start_line, start_column, end_line, end_column):
    return Position(Point(start_line, start_column), Point(end_line, end_column))


def sample_tree():
    """root > [blockquote > [paragraph > [text, link > [text]]], code]"""
    link = Node(NodeKind.LINK, [Node(NodeKind.TEXT, [], span(1, 4, 1, 5), "b", "text")],
                span(1, 3, 1, 9), name="link")
    paragraph = Node(NodeKind.OTHER, [Node(NodeKind.TEXT, [], span(1, 3, 1, 3), "a", "text"), link],
                     span(1, 3, 1, 9), name="paragraph")
    quote = Node(NodeKind.BLOCKQUOTE, [paragraph], span(1, 1, 1, 9), name="blockquote")
    code = Node(NodeKind.CODE, [], span(3, 1, 5, 4), "x = 1\n", "fence")
    return Node(NodeKind.ROOT, [quote, code], span(1, 1, 5, 4), name="root")


# ============================================================================
# Position Tests
# ============================================================================

def test_start_and_end_points():
    """Test start/end return the node's points."""
    node = Node(NodeKind.HEADING, [], span(2, 1, 2, 10))
    assert node.start == Point(2, 1)
    assert node.end == Point(2, 10)
    assert not node.is_generated


def test_node_without_position_is_generated():
    """Test nodes with no position are generated."""
    node = Node(NodeKind.LINK)
    assert node.is_generated


def test_generated_flag_overrides_position():
    """Test explicitly generated nodes stay generated even with a position."""
    node = Node(NodeKind.LINK, [], span(1, 1, 1, 5), generated=True)
    assert node.is_generated


def test_missing_position_raises_on_access():
    """Test accessing the start of a position-less node raises."""
    node = Node(NodeKind.BLOCKQUOTE, name="blockquote")
    with pytest.raises(MalformedPositionError) as exc_info:
        node.start
    assert "blockquote" in str(exc_info.value)


@pytest.mark.parametrize("point", [
    Point(0, 1),
    Point(1, 0),
    Point(-3, 2),
    Point(True, 1),
    Point("1", 1),
    Point(None, 1),
])
def test_invalid_points_raise(point):
    """Test lines and columns must be positive integers."""
    node = Node(NodeKind.TEXT, [], Position(point, Point(1, 5)))
    with pytest.raises(MalformedPositionError):
        node.start


def test_invalid_end_point_raises():
    """Test the end point is validated independently of the start."""
    node = Node(NodeKind.TEXT, [], Position(Point(1, 1), Point(1, 0)))
    assert node.start == Point(1, 1)
    with pytest.raises(MalformedPositionError):
        node.end


def test_malformed_position_is_value_error():
    """Test MalformedPositionError can be caught as ValueError."""
    assert issubclass(MalformedPositionError, ValueError)


# ============================================================================
# Traversal Tests
# ============================================================================

def test_walk_pre_order():
    """Test walk visits parents before children, in document order."""
    names = [node.name for node, _, _ in walk(sample_tree())]
    assert names == ["root", "blockquote", "paragraph", "text", "link", "text", "fence"]


def test_walk_reports_index_and_parent():
    """Test walk yields each node's index and parent."""
    tree = sample_tree()
    visited = {id(node): (index, parent) for node, index, parent in walk(tree)}

    assert visited[id(tree)] == (None, None)
    link = tree.children[0].children[0].children[1]
    index, parent = visited[id(link)]
    assert index == 1
    assert parent is tree.children[0].children[0]


def test_walk_filters_kinds():
    """Test kinds filter yields only matching nodes."""
    kinds = [node.kind for node, _, _ in walk(sample_tree(), [NodeKind.TEXT, NodeKind.CODE])]
    assert kinds == [NodeKind.TEXT, NodeKind.TEXT, NodeKind.CODE]


def test_walk_descends_into_generated_nodes():
    """Test children of generated nodes are still visited."""
    inner = Node(NodeKind.LINK, [], span(1, 1, 1, 4), name="link")
    outer = Node(NodeKind.OTHER, [inner], name="emphasis")
    tree = Node(NodeKind.ROOT, [outer], span(1, 1, 1, 4))

    found = [node for node, _, _ in walk(tree, [NodeKind.LINK])]
    assert found == [inner]


def test_walk_visits_each_node_once():
    """Test traversal is total and never revisits a node."""
    tree = sample_tree()
    visited = [id(node) for node, _, _ in walk(tree)]
    assert len(visited) == len(set(visited))
    assert len(visited) == 7


def test_walk_empty_root():
    """Test walking a root without children yields only the root."""
    tree = Node(NodeKind.ROOT, [], span(1, 1, 1, 1))
    assert [node for node, _, _ in walk(tree)] == [tree]


def test_next_sibling():
    """Test next_sibling returns the following child or None."""
    tree = sample_tree()
    assert next_sibling(tree, 0) is tree.children[1]
    assert next_sibling(tree, 1) is None
    assert next_sibling(None, None) is None


# ============================================================================
# Text Tests
# ============================================================================

def test_to_string_concatenates_children():
    """Test to_string joins descendant text."""
    paragraph = sample_tree().children[0].children[0]
    assert to_string(paragraph) == "ab"


def test_to_string_prefers_value():
    """Test to_string uses a node's own value when present."""
    code = sample_tree().children[1]
    assert to_string(code) == "x = 1\n"


def test_to_string_empty():
    """Test to_string of a node with no value and no children."""
    assert to_string(Node(NodeKind.OTHER)) == ""
