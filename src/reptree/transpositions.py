"""Collapse transposed positions into references to one canonical node.

Two nodes transpose when they carry the same normalized FEN *and* the same
move number, e.g. ``1. e4 e5 2. Nf3`` and ``1. Nf3 e5 2. e4``.  The same
board reached at a different move number is a different point in the game
and is left alone.

The tree is walked breadth-first, so the canonical node for a position is
the shallowest occurrence, ties going to the earlier sibling line.  Every
later occurrence hands its children to the canonical node (same matching
rule as :func:`reptree.merge.merge_into`), is left with no children, and
records the canonical id in ``transposition_of``.

Nodes that already point somewhere are never picked as canonical; they are
re-pointed at the current canonical node for their position, and any moves
that ended up below them are handed to that node.  A pointer whose position
has no live node left becomes an ordinary node again.
"""

from __future__ import annotations

from collections import deque

from .merge import merge_into
from .models import RepertoireNode

PositionKey = tuple[str, int]


def position_key(node: RepertoireNode) -> PositionKey:
    return node.fen, node.move_number


def canonicalize(root: RepertoireNode) -> RepertoireNode:
    """Fold duplicate positions of *root* in place and return it.

    Folding grafts copies of a duplicate's children onto a canonical node
    that the walk has already passed, and those copies can themselves repeat
    a position seen elsewhere.  Passes are repeated until one folds nothing.
    """
    while _fold_pass(root):
        pass
    return root


def _fold_pass(root: RepertoireNode) -> int:
    """One breadth-first pass; returns the number of nodes folded."""
    canonical: dict[PositionKey, RepertoireNode] = {}
    pointers: list[RepertoireNode] = []
    folded = 0

    queue: deque[RepertoireNode] = deque([root])
    while queue:
        node = queue.popleft()

        if node.transposition_of is not None:
            pointers.append(node)
            continue

        key = position_key(node)
        first = canonical.get(key)
        if first is None:
            canonical[key] = node
            queue.extend(node.children)
            continue

        merge_into(first, node)
        node.children = []
        node.transposition_of = first.id
        folded += 1

    for node in pointers:
        first = canonical.get(position_key(node))
        if first is None:
            # Nothing live holds this position; the node takes it over.
            node.transposition_of = None
            folded += 1
            continue
        node.transposition_of = first.id
        # A pointer never keeps moves of its own.
        if node.children:
            merge_into(first, node)
            node.children = []
            folded += 1

    return folded


def find_transpositions(root: RepertoireNode) -> dict[PositionKey, list[str]]:
    """Preview which node ids :func:`canonicalize` would group together.

    Returns ``{(fen, move_number): [canonical_id, duplicate_id, ...]}`` in
    breadth-first order, only for positions reached more than once.
    Existing pointer nodes are not listed.
    """
    groups: dict[PositionKey, list[str]] = {}
    queue: deque[RepertoireNode] = deque([root])
    while queue:
        node = queue.popleft()
        if node.transposition_of is not None:
            continue
        groups.setdefault(position_key(node), []).append(node.id)
        queue.extend(node.children)
    return {key: ids for key, ids in groups.items() if len(ids) > 1}
