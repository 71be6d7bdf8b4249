"""Single-tree primitives shared by the builder, merge, transposition and
extraction algorithms.

Lookups walk an explicit stack rather than recursing so that a pathological
tree (e.g. a long pasted game) cannot exhaust Python's recursion limit.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator

from .models import (
    BLACK_TO_MOVE,
    WHITE_TO_MOVE,
    Metadata,
    RepertoireNode,
    new_id,
)
from .oracle import STARTING_FEN, normalize_fen


def new_root() -> RepertoireNode:
    """A one-node tree at the standard starting position."""
    return RepertoireNode(
        id=new_id(),
        fen=normalize_fen(STARTING_FEN),
        move=None,
        move_number=0,
        color_to_move=WHITE_TO_MOVE,
    )


def child_move_number(parent: RepertoireNode) -> int:
    """Number of the full move that a child of *parent* is reached by.

    White's move opens a new full move; Black's reply keeps the number.
    """
    if parent.color_to_move == BLACK_TO_MOVE:
        return parent.move_number
    return parent.move_number + 1


def iter_nodes(root: RepertoireNode) -> Iterator[RepertoireNode]:
    """Yield every node depth-first, pre-order, children in sibling order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(root: RepertoireNode, node_id: str) -> RepertoireNode | None:
    for node in iter_nodes(root):
        if node.id == node_id:
            return node
    return None


def find_path(root: RepertoireNode, node_id: str) -> list[RepertoireNode] | None:
    """Return ``[root, ..., node]`` for *node_id*, or None if absent."""
    # Each entry carries the index of the next child to visit.
    path: list[RepertoireNode] = [root]
    cursors: list[int] = [0]
    if root.id == node_id:
        return path
    while path:
        node = path[-1]
        idx = cursors[-1]
        if idx >= len(node.children):
            path.pop()
            cursors.pop()
            continue
        cursors[-1] = idx + 1
        child = node.children[idx]
        path.append(child)
        cursors.append(0)
        if child.id == node_id:
            return list(path)
    return None


def find_parent(root: RepertoireNode, node_id: str) -> RepertoireNode | None:
    path = find_path(root, node_id)
    if path is None or len(path) < 2:
        return None
    return path[-2]


def exists_as_child(parent: RepertoireNode, move: str) -> bool:
    return parent.child_by_move(move) is not None


def delete_by_id(root: RepertoireNode, node_id: str) -> RepertoireNode | None:
    """Return a copy of *root* without the node *node_id* and its subtree.

    Only the nodes on the path to the deleted node are copied; every other
    subtree is shared with the input, which is left untouched.  Returns None
    when no descendant has that id.  The root itself is never matched.
    """
    path = find_path(root, node_id)
    if path is None or len(path) < 2:
        return None

    # Rebuild the path bottom-up: the parent loses the child, each ancestor
    # points at the rebuilt copy of the next node.
    doomed = path[-1]
    replacement: RepertoireNode | None = None
    replaced = doomed
    for original in reversed(path[:-1]):
        clone = copy.copy(original)
        if replacement is None:
            clone.children = [c for c in original.children if c is not replaced]
        else:
            clone.children = [
                replacement if c is replaced else c for c in original.children
            ]
        replacement, replaced = clone, original
    return replacement


def deep_clone(node: RepertoireNode, new_parent_id: str | None) -> RepertoireNode:
    """Copy *node* and all descendants with fresh ids.

    ``transposition_of`` is dropped: it names a node in the source tree.
    """
    clone = RepertoireNode(
        id=new_id(),
        fen=node.fen,
        move=node.move,
        move_number=node.move_number,
        color_to_move=node.color_to_move,
        parent_id=new_parent_id,
        comment=node.comment,
    )
    clone.children = [deep_clone(child, clone.id) for child in node.children]
    return clone


def compute_metadata(root: RepertoireNode) -> Metadata:
    total_nodes = total_moves = deepest = 0
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        total_nodes += 1
        if node.move is not None:
            total_moves += 1
        if depth > deepest:
            deepest = depth
        stack.extend((child, depth + 1) for child in node.children)
    return Metadata(
        total_nodes=total_nodes,
        total_moves=total_moves,
        deepest_depth=deepest,
    )


def subtree_size(node: RepertoireNode) -> int:
    return sum(1 for _ in iter_nodes(node))
