"""Fold one repertoire tree into another.

Children are matched by SAN text.  A matching child is unified recursively;
a child the target lacks is deep-cloned (fresh ids) and appended, so the
source tree is never aliased into the result.

Comments follow a first-come policy: a node's existing comment always wins
and a source comment only fills an empty slot.  Applying sources in a
different order can therefore change which comment survives, but never
which moves are present.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import RepertoireNode
from .tree import deep_clone, new_root


def merge_into(target: RepertoireNode, source: RepertoireNode) -> None:
    """Merge the children of *source* into *target* in place."""
    for src_child in source.children:
        matched = None
        if src_child.move is not None:
            matched = target.child_by_move(src_child.move)

        if matched is None:
            target.children.append(deep_clone(src_child, target.id))
            continue

        if matched.comment is None and src_child.comment is not None:
            matched.comment = src_child.comment
        merge_into(matched, src_child)


def merge_trees(roots: Iterable[RepertoireNode]) -> RepertoireNode:
    """Return a fresh tree holding the union of every tree in *roots*."""
    merged = new_root()
    for root in roots:
        merge_into(merged, root)
    return merged
