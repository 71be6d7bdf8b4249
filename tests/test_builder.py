"""Tests for building repertoire trees from PGN."""

from __future__ import annotations

import chess
import pytest

from reptree.builder import (
    build_tree,
    color_from_headers,
    parse_movetext,
    parse_pgn,
    split_games,
    split_headers,
)
from reptree.errors import CustomStartingPosition, IllegalMove, VariationTooDeep
from reptree.models import RepertoireNode
from reptree.oracle import ChessOracle
from reptree.tokenizer import tokenize
from reptree.tree import compute_metadata, iter_nodes

_POST_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq -"


def _moves(node: RepertoireNode) -> list[str]:
    return [c.move for c in node.children if c.move is not None]


def _line(root: RepertoireNode) -> list[str]:
    """Main line (first child at every node)."""
    out = []
    node = root
    while node.children:
        node = node.children[0]
        out.append(node.move)
    return out


# ---------------------------------------------------------------------------
# Main line
# ---------------------------------------------------------------------------


def test_empty_movetext_gives_bare_root() -> None:
    root = parse_movetext("")
    assert root.move is None
    assert root.children == []
    assert root.fen == " ".join(chess.STARTING_FEN.split()[:4])


def test_single_line_end_to_end() -> None:
    root = parse_movetext("1. e4 e5 2. Nf3 Nc6 *")
    md = compute_metadata(root)
    assert md.total_nodes == 5
    assert md.total_moves == 4
    assert md.deepest_depth == 4
    assert _line(root) == ["e4", "e5", "Nf3", "Nc6"]


def test_node_fields() -> None:
    root = parse_movetext("1. e4 e5 2. Nf3")
    e4 = root.children[0]
    e5 = e4.children[0]
    nf3 = e5.children[0]

    assert e4.fen == _POST_E4
    assert len(e4.fen.split()) == 4
    assert (e4.move_number, e4.color_to_move) == (1, "b")
    assert (e5.move_number, e5.color_to_move) == (1, "w")
    assert (nf3.move_number, nf3.color_to_move) == (2, "b")
    assert root.move_number == 0
    assert root.color_to_move == "w"


def test_parent_ids_link_to_parent() -> None:
    root = parse_movetext("1. e4 e5 2. Nf3 (2. Nc3) Nc6")
    for node in iter_nodes(root):
        for child in node.children:
            assert child.parent_id == node.id
    assert root.parent_id is None


def test_ids_are_unique() -> None:
    root = parse_movetext("1. e4 e5 (1... c5 2. Nf3) 2. Nf3")
    ids = [n.id for n in iter_nodes(root)]
    assert len(ids) == len(set(ids))


def test_every_line_replays_legally() -> None:
    root = parse_movetext("1. e4 e5 (1... c5 2. Nf3 d6) 2. Nf3 Nc6 (2... Nf6 3. Nxe5) 3. Bb5")
    stack = [(root, chess.Board())]
    while stack:
        node, board = stack.pop()
        assert node.fen == " ".join(board.fen().split()[:4])
        for child in node.children:
            nxt = board.copy()
            nxt.push_san(child.move)
            stack.append((child, nxt))


def test_annotations_and_results_ignored() -> None:
    root = parse_movetext("1. e4! $1 e5?! 2. Nf3!! {good} 1-0")
    assert _line(root) == ["e4", "e5", "Nf3"]


def test_glued_move_numbers() -> None:
    assert _line(parse_movetext("1.e4 e5 2.Nf3 Nc6 3.Bb5")) == ["e4", "e5", "Nf3", "Nc6", "Bb5"]


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


def test_comment_attaches_to_last_move() -> None:
    root = parse_movetext("1. e4 { King's pawn } e5 2. Nf3")
    e4 = root.children[0]
    assert e4.comment == "King's pawn"
    assert e4.children[0].comment is None


def test_comment_before_first_move_not_on_root() -> None:
    root = parse_movetext("{ Intro text } 1. e4")
    assert root.comment is None
    assert root.children[0].comment is None


def test_blank_comment_ignored() -> None:
    root = parse_movetext("1. e4 {   } e5")
    assert root.children[0].comment is None


# ---------------------------------------------------------------------------
# Variations
# ---------------------------------------------------------------------------


def test_variation_branches_from_parent() -> None:
    root = parse_movetext("1. e4 (1. d4 d5) 1... e5")
    assert _moves(root) == ["e4", "d4"]
    assert _moves(root.children[0]) == ["e5"]
    assert _moves(root.children[1]) == ["d5"]


def test_repeated_move_in_variation_reuses_child() -> None:
    root = parse_movetext("e4 e5 (e5 Nf3)")
    e4 = root.children[0]
    assert _moves(e4) == ["e5"]
    assert _moves(e4.children[0]) == ["Nf3"]


def test_repeated_move_adds_second_child() -> None:
    root = parse_movetext("1. e4 e5 (1... e5 2. Nf3) 2. Nc3")
    e5 = root.children[0].children[0]
    assert len(root.children[0].children) == 1
    assert _moves(e5) == ["Nf3", "Nc3"]


def test_nested_variations() -> None:
    root = parse_movetext("1. e4 e5 2. Nf3 (2. Nc3 Nf6 (2... Nc6 3. Bc4)) 2... Nc6")
    e5 = root.children[0].children[0]
    assert _moves(e5) == ["Nf3", "Nc3"]
    nf3, nc3 = e5.children
    assert _moves(nf3) == ["Nc6"]
    assert _moves(nc3) == ["Nf6", "Nc6"]
    assert _moves(nc3.children[1]) == ["Bc4"]


def test_main_line_resumes_after_variation() -> None:
    root = parse_movetext("1. e4 e5 (1... c5) 2. Nf3 Nc6")
    assert _line(root) == ["e4", "e5", "Nf3", "Nc6"]
    assert _moves(root.children[0]) == ["e5", "c5"]


def test_variation_at_start_branches_from_root() -> None:
    root = parse_movetext("(1. d4) 1. e4")
    assert _moves(root) == ["d4", "e4"]


def test_stray_closing_parenthesis_ignored() -> None:
    root = parse_movetext("1. e4 ) e5")
    assert _line(root) == ["e4", "e5"]


def test_variation_depth_limit() -> None:
    tokens = tokenize("1. e4 ( ( ( 1. d4 ) ) )")
    with pytest.raises(VariationTooDeep):
        build_tree(tokens, max_variation_depth=2)
    # Within the limit the same text builds.
    assert _moves(build_tree(tokens, max_variation_depth=3)) == ["e4", "d4"]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_illegal_move_raises() -> None:
    with pytest.raises(IllegalMove) as exc_info:
        parse_movetext("1. e4 e4")
    assert exc_info.value.move == "e4"


def test_illegal_move_in_variation_raises() -> None:
    with pytest.raises(IllegalMove):
        parse_movetext("1. e4 e5 (1... Ke7 2. Ke2) 2. Nf3")


def test_custom_starting_position_rejected() -> None:
    with pytest.raises(CustomStartingPosition):
        build_tree(tokenize("1. Kb2"), "8/8/8/8/8/8/8/K6k w - - 0 1")


def test_oracle_is_consulted_for_every_move() -> None:
    class CountingOracle(ChessOracle):
        def __init__(self) -> None:
            self.checked: list[str] = []

        def is_legal(self, fen: str, san: str) -> bool:
            self.checked.append(san)
            return super().is_legal(fen, san)

    oracle = CountingOracle()
    parse_movetext("1. e4 e5 (1... e5 2. Nf3)", oracle=oracle)
    assert oracle.checked == ["e4", "e5", "e5", "Nf3"]


# ---------------------------------------------------------------------------
# Whole games
# ---------------------------------------------------------------------------


_GAME = """[Event "My Repertoire: Italian"]
[Orientation "black"]

1. e4 e5 2. Nf3 Nc6 3. Bc4 *
"""


def test_split_headers() -> None:
    headers, movetext = split_headers(_GAME)
    assert headers == {"Event": "My Repertoire: Italian", "Orientation": "black"}
    assert movetext.strip() == "1. e4 e5 2. Nf3 Nc6 3. Bc4 *"


def test_split_headers_without_tags() -> None:
    headers, movetext = split_headers("1. d4 d5")
    assert headers == {}
    assert movetext == "1. d4 d5"


def test_parse_pgn() -> None:
    root, headers = parse_pgn(_GAME)
    assert headers["Event"] == "My Repertoire: Italian"
    assert _line(root) == ["e4", "e5", "Nf3", "Nc6", "Bc4"]


def test_parse_pgn_standard_fen_header_accepted() -> None:
    pgn = f'[FEN "{chess.STARTING_FEN}"]\n[SetUp "1"]\n\n1. e4 *'
    root, _ = parse_pgn(pgn)
    assert _moves(root) == ["e4"]


def test_parse_pgn_custom_fen_rejected() -> None:
    pgn = '[FEN "8/8/8/8/8/8/8/K6k w - - 0 1"]\n[SetUp "1"]\n\n1. Kb2 *'
    with pytest.raises(CustomStartingPosition):
        parse_pgn(pgn)


def test_split_games() -> None:
    text = (
        '[Event "A"]\n\n1. e4 e5 *\n\n'
        '[Event "B"]\n[Orientation "black"]\n\n1. d4 d5 *\n'
    )
    games = split_games(text)
    assert len(games) == 2
    assert split_headers(games[0])[0]["Event"] == "A"
    assert split_headers(games[1])[0] == {"Event": "B", "Orientation": "black"}


def test_split_games_movetext_only() -> None:
    assert split_games("1. e4 e5 *") == ["1. e4 e5 *"]
    assert split_games("   \n") == []


@pytest.mark.parametrize(
    "orientation, expected",
    [("black", "black"), ("White", "white"), ("", "white"), ("sideways", "white")],
)
def test_color_from_headers(orientation: str, expected: str) -> None:
    assert color_from_headers({"Orientation": orientation}) == expected
