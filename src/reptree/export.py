"""PGN export for repertoires.

Each repertoire becomes one PGN game.  The first child of every node is the
main line and the remaining children are written as variations, so the
output re-imports into the same tree with :func:`reptree.builder.parse_pgn`
(and into ChessBase, Lichess studies, etc.).

  [Event "Italian Game"]
  [Orientation "white"]
  [Annotator "reptree"]

  1. e4 e5 2. Nf3 { main line } ( 2. Bc4 ) 2... Nc6 *

Node comments are written as PGN comments.  Transposition pointer nodes are
written as leaves.
"""

from __future__ import annotations

import datetime
from pathlib import Path

import chess
import chess.pgn

from .errors import IllegalMove
from .models import Repertoire, RepertoireNode


def export_pgn(repertoires: list[Repertoire], out_path: Path) -> None:
    """Write *repertoires* to *out_path* as a multi-game PGN."""
    games = [build_game(rep) for rep in repertoires]
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fh:
        exporter = chess.pgn.FileExporter(fh)
        for game in games:
            game.accept(exporter)


def repertoire_to_pgn(rep: Repertoire) -> str:
    exporter = chess.pgn.StringExporter(headers=True, variations=True, comments=True)
    return build_game(rep).accept(exporter)


def build_game(rep: Repertoire) -> chess.pgn.Game:
    game = chess.pgn.Game()
    game.headers["Event"] = rep.name
    game.headers["Site"] = "?"
    game.headers["Date"] = datetime.date.today().strftime("%Y.%m.%d")
    game.headers["Round"] = "?"
    game.headers["White"] = "?"
    game.headers["Black"] = "?"
    game.headers["Result"] = "*"
    game.headers["Annotator"] = "reptree"
    game.headers["Orientation"] = rep.color

    _add_children(game, rep.tree)
    return game


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _add_children(game: chess.pgn.Game, root: RepertoireNode) -> None:
    stack: list[tuple[chess.pgn.GameNode, RepertoireNode]] = [(game, root)]
    while stack:
        pgn_node, tree_node = stack.pop()
        board = pgn_node.board()
        for child in tree_node.children:
            if child.move is None:
                continue
            try:
                move = board.parse_san(child.move)
            except ValueError as exc:
                raise IllegalMove(child.move, board.fen(), str(exc)) from exc
            variation = pgn_node.add_variation(move, comment=child.comment or "")
            stack.append((variation, child))
