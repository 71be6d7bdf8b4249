"""Split a subtree out of a repertoire.

Given a target node, the extracted tree is the *spine* (a fresh linear copy
of the path from the root to the target) with a deep copy of the target's
whole subtree hanging from its last node.  The original loses the target
and everything below it; the spine positions above the target stay in both
trees.
"""

from __future__ import annotations

from .errors import CannotExtractRoot, NodeNotFound
from .models import RepertoireNode, new_id
from .tree import deep_clone, delete_by_id, find_path


def extract_subtree(
    root: RepertoireNode,
    target_id: str,
) -> tuple[RepertoireNode, RepertoireNode]:
    """Return ``(pruned_original, extracted)`` for *target_id*.

    *root* itself is not modified.
    """
    if root.id == target_id:
        raise CannotExtractRoot()

    path = find_path(root, target_id)
    if path is None:
        raise NodeNotFound(target_id)

    extracted = build_spine(path)

    pruned = delete_by_id(root, target_id)
    if pruned is None:
        raise NodeNotFound(target_id)

    return pruned, extracted


def build_spine(path: list[RepertoireNode]) -> RepertoireNode:
    """Fresh-id linear copy of *path*; the last node gets the subtree."""
    spine: list[RepertoireNode] = []
    parent_id: str | None = None
    for node in path:
        copy = RepertoireNode(
            id=new_id(),
            fen=node.fen,
            move=node.move,
            move_number=node.move_number,
            color_to_move=node.color_to_move,
            parent_id=parent_id,
            comment=node.comment,
        )
        if spine:
            spine[-1].children = [copy]
        spine.append(copy)
        parent_id = copy.id

    last = spine[-1]
    target = path[-1]
    last.children = [deep_clone(child, last.id) for child in target.children]
    return spine[0]


def default_extract_name(repertoire_name: str, target: RepertoireNode) -> str:
    return f"{repertoire_name} - {target.move or ''}".strip()
