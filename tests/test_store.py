"""Tests for the SQLite repertoire store."""

from __future__ import annotations

from pathlib import Path

import pytest

from reptree.builder import parse_movetext
from reptree.errors import RepertoireNotFound
from reptree.store import RepertoireStore
from reptree.tree import compute_metadata

_OWNER = "alice"


def test_create_starts_with_bare_root(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        rep = store.create(_OWNER, "1.e4", "white")
        assert rep.tree.move is None
        assert rep.tree.children == []
        assert rep.metadata.total_nodes == 1
        assert rep.created_at == rep.updated_at


def test_get_by_id_round_trip(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        rep = store.create(_OWNER, "Sicilian", "black")
        loaded = store.get_by_id(rep.id)
        assert loaded.id == rep.id
        assert loaded.owner_id == _OWNER
        assert loaded.name == "Sicilian"
        assert loaded.color == "black"
        assert loaded.tree.id == rep.tree.id


def test_get_missing(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        with pytest.raises(RepertoireNotFound):
            store.get_by_id("nope")


def test_save_replaces_tree(tmp_path: Path) -> None:
    tree = parse_movetext("1. e4 {main} e5 (1... c5) 2. Nf3")
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        rep = store.create(_OWNER, "1.e4", "white")
        saved = store.save(rep.id, tree, compute_metadata(tree))

        assert saved.metadata.total_nodes == 5
        assert saved.tree.id == tree.id
        e4 = saved.tree.children[0]
        assert e4.comment == "main"
        assert [c.move for c in e4.children] == ["e5", "c5"]
        assert e4.children[0].parent_id == e4.id
        assert saved.updated_at >= rep.updated_at


def test_save_missing(tmp_path: Path) -> None:
    tree = parse_movetext("1. e4")
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        with pytest.raises(RepertoireNotFound):
            store.save("nope", tree, compute_metadata(tree))


def test_update_name(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        rep = store.create(_OWNER, "old", "white")
        assert store.update_name(rep.id, "new").name == "new"
        assert store.get_by_id(rep.id).name == "new"
        with pytest.raises(RepertoireNotFound):
            store.update_name("nope", "x")


def test_delete(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        rep = store.create(_OWNER, "gone", "white")
        store.delete(rep.id)
        assert not store.exists(rep.id)
        with pytest.raises(RepertoireNotFound):
            store.delete(rep.id)


def test_list_and_count_per_owner(tmp_path: Path) -> None:
    with RepertoireStore(tmp_path / "test.sqlite") as store:
        a = store.create(_OWNER, "a", "white")
        b = store.create(_OWNER, "b", "black")
        store.create("bob", "c", "white")

        assert [r.id for r in store.list_for_owner(_OWNER)] == [a.id, b.id]
        assert [r.id for r in store.list_for_owner(_OWNER, "black")] == [b.id]
        assert store.count_for_owner(_OWNER) == 2
        assert store.count_for_owner("bob") == 1
        assert store.count_for_owner("carol") == 0


def test_persists_across_instances(tmp_path: Path) -> None:
    db = tmp_path / "persist.sqlite"
    tree = parse_movetext("1. d4 d5")
    with RepertoireStore(db) as s1:
        rep = s1.create(_OWNER, "QG", "white")
        s1.save(rep.id, tree, compute_metadata(tree))
    with RepertoireStore(db) as s2:
        loaded = s2.get_by_id(rep.id)
        assert [n.move for n in (loaded.tree, *loaded.tree.children)] == [None, "d4"]
        assert loaded.metadata.deepest_depth == 2


def test_creates_parent_directory(tmp_path: Path) -> None:
    nested_db = tmp_path / "a" / "b" / "reps.sqlite"
    with RepertoireStore(nested_db) as store:
        store.create(_OWNER, "x", "white")
    assert nested_db.exists()
