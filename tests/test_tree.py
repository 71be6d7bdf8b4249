"""Tests for the single-tree primitives."""

from __future__ import annotations

from reptree.builder import parse_movetext
from reptree.models import RepertoireNode
from reptree.tree import (
    compute_metadata,
    deep_clone,
    delete_by_id,
    exists_as_child,
    find_node,
    find_parent,
    find_path,
    iter_nodes,
    new_root,
    subtree_size,
)

# root → e4 → [e5 → [Nf3 → Nc6, Nc3], c5 → Nf3]
_PGN = "1. e4 e5 (1... c5 2. Nf3) 2. Nf3 (2. Nc3) 2... Nc6"


def _tree() -> RepertoireNode:
    return parse_movetext(_PGN)


def _by_path(root: RepertoireNode, *moves: str) -> RepertoireNode:
    node = root
    for move in moves:
        child = node.child_by_move(move)
        assert child is not None, f"{move} missing below {node.move}"
        node = child
    return node


def _shape(node: RepertoireNode) -> tuple:
    return (node.move, node.fen, node.comment, tuple(_shape(c) for c in node.children))


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def test_new_root() -> None:
    root = new_root()
    assert root.move is None
    assert root.children == []
    assert root.fen == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq -"
    assert compute_metadata(root).total_nodes == 1


def test_iter_nodes_preorder() -> None:
    root = _tree()
    assert [n.move for n in iter_nodes(root)] == [
        None, "e4", "e5", "Nf3", "Nc6", "Nc3", "c5", "Nf3",
    ]


def test_find_node() -> None:
    root = _tree()
    nc6 = _by_path(root, "e4", "e5", "Nf3", "Nc6")
    assert find_node(root, nc6.id) is nc6
    assert find_node(root, root.id) is root
    assert find_node(root, "missing") is None


def test_find_path() -> None:
    root = _tree()
    target = _by_path(root, "e4", "c5", "Nf3")
    path = find_path(root, target.id)
    assert path is not None
    assert [n.move for n in path] == [None, "e4", "c5", "Nf3"]
    assert find_path(root, root.id) == [root]
    assert find_path(root, "missing") is None


def test_find_parent() -> None:
    root = _tree()
    nc3 = _by_path(root, "e4", "e5", "Nc3")
    assert find_parent(root, nc3.id) is _by_path(root, "e4", "e5")
    assert find_parent(root, root.id) is None
    assert find_parent(root, "missing") is None


def test_exists_as_child() -> None:
    root = _tree()
    e4 = root.children[0]
    assert exists_as_child(e4, "e5")
    assert exists_as_child(e4, "c5")
    assert not exists_as_child(e4, "d5")
    assert not exists_as_child(root, "e5")


# ---------------------------------------------------------------------------
# delete_by_id
# ---------------------------------------------------------------------------


def test_delete_leaf() -> None:
    root = _tree()
    nc3 = _by_path(root, "e4", "e5", "Nc3")
    pruned = delete_by_id(root, nc3.id)
    assert pruned is not None
    assert find_node(pruned, nc3.id) is None
    assert compute_metadata(pruned).total_nodes == 7


def test_delete_removes_subtree() -> None:
    root = _tree()
    e5 = _by_path(root, "e4", "e5")
    pruned = delete_by_id(root, e5.id)
    assert pruned is not None
    assert [c.move for c in pruned.children[0].children] == ["c5"]
    assert compute_metadata(pruned).total_nodes == 4


def test_delete_leaves_input_untouched() -> None:
    root = _tree()
    before = _shape(root)
    e5 = _by_path(root, "e4", "e5")
    delete_by_id(root, e5.id)
    assert _shape(root) == before


def test_delete_missing_returns_none() -> None:
    assert delete_by_id(_tree(), "missing") is None


def test_delete_root_id_not_matched() -> None:
    root = _tree()
    assert delete_by_id(root, root.id) is None


def test_delete_keeps_ids_of_survivors() -> None:
    root = _tree()
    c5 = _by_path(root, "e4", "c5")
    nc3 = _by_path(root, "e4", "e5", "Nc3")
    pruned = delete_by_id(root, nc3.id)
    assert pruned is not None
    assert pruned.id == root.id
    assert find_node(pruned, c5.id) is not None


# ---------------------------------------------------------------------------
# deep_clone
# ---------------------------------------------------------------------------


def test_deep_clone_fresh_ids_same_shape() -> None:
    root = _tree()
    e4 = root.children[0]
    e4.children[0].comment = "main"
    clone = deep_clone(e4, "new-parent")

    assert _shape(clone) == _shape(e4)
    original_ids = {n.id for n in iter_nodes(e4)}
    clone_ids = {n.id for n in iter_nodes(clone)}
    assert original_ids.isdisjoint(clone_ids)
    assert len(clone_ids) == subtree_size(e4)


def test_deep_clone_rewrites_parent_links() -> None:
    clone = deep_clone(_tree().children[0], "new-parent")
    assert clone.parent_id == "new-parent"
    for node in iter_nodes(clone):
        for child in node.children:
            assert child.parent_id == node.id


def test_deep_clone_preserves_fields() -> None:
    e4 = _tree().children[0]
    clone = deep_clone(e4, None)
    assert (clone.move, clone.fen, clone.move_number, clone.color_to_move) == (
        e4.move, e4.fen, e4.move_number, e4.color_to_move,
    )


def test_deep_clone_drops_transposition_pointer() -> None:
    node = RepertoireNode(id="x", fen="f", move="e4", transposition_of="other")
    assert deep_clone(node, None).transposition_of is None


# ---------------------------------------------------------------------------
# compute_metadata
# ---------------------------------------------------------------------------


def test_metadata_counts() -> None:
    md = compute_metadata(_tree())
    assert md.total_nodes == 8
    assert md.total_moves == 7
    assert md.deepest_depth == 4


def test_metadata_moves_is_nodes_minus_one() -> None:
    for pgn in ["", "1. e4", _PGN, "1. d4 d5 2. c4 (2. Nf3 Nf6) e6 3. Nc3"]:
        md = compute_metadata(parse_movetext(pgn))
        assert md.total_moves == md.total_nodes - 1


def test_metadata_counts_pointer_nodes() -> None:
    root = _tree()
    leaf = _by_path(root, "e4", "e5", "Nc3")
    leaf.transposition_of = "somewhere"
    md = compute_metadata(root)
    assert md.total_nodes == 8
    assert md.total_moves == 7


def test_subtree_size() -> None:
    root = _tree()
    assert subtree_size(root) == 8
    assert subtree_size(_by_path(root, "e4", "e5")) == 4
