"""Chess rule lookups consumed by the tree engine.

The engine never decides legality itself.  It asks an *oracle* three
questions: is this SAN move legal here, what position results, and whose
turn is it.  :class:`ChessOracle` answers them with python-chess; tests and
callers may pass any object with the same three methods.

FEN conventions
---------------
Positions handed *to* the oracle may have four or six fields.  Positions
returned by :meth:`ChessOracle.apply` always have six, so a caller walking a
line keeps the move clocks.  Tree nodes store the four-field form produced by
:func:`normalize_fen`; the en-passant square only appears when a capture is
actually possible (python-chess's default), which keeps transposed positions
textually equal.
"""

from __future__ import annotations

from typing import Protocol

import chess

from .errors import IllegalMove
from .models import BLACK_TO_MOVE, WHITE_TO_MOVE

STARTING_FEN = chess.STARTING_FEN


def normalize_fen(fen: str) -> str:
    """Keep only board, side to move, castling and en-passant fields."""
    parts = fen.split()
    if len(parts) >= 4:
        return " ".join(parts[:4])
    return fen


def ensure_full_fen(fen: str) -> str:
    """Pad a four-field FEN with neutral move clocks."""
    parts = fen.split()
    if len(parts) >= 6:
        return fen
    return fen + " 0 1"


def is_standard_start(fen: str) -> bool:
    return normalize_fen(fen) == normalize_fen(STARTING_FEN)


class Oracle(Protocol):
    def is_legal(self, fen: str, san: str) -> bool: ...

    def apply(self, fen: str, san: str) -> str: ...

    def side_to_move(self, fen: str) -> str: ...


class ChessOracle:
    """python-chess backed oracle."""

    def is_legal(self, fen: str, san: str) -> bool:
        try:
            chess.Board(ensure_full_fen(fen)).parse_san(san)
        except ValueError:
            return False
        return True

    def apply(self, fen: str, san: str) -> str:
        """Play *san* from *fen* and return the resulting six-field FEN.

        Raises :class:`~reptree.errors.IllegalMove` when the move is illegal,
        ambiguous or unparsable, or when *fen* itself is invalid.
        """
        try:
            board = chess.Board(ensure_full_fen(fen))
            board.push_san(san)
        except ValueError as exc:
            raise IllegalMove(san, fen, str(exc)) from exc
        return board.fen()

    def side_to_move(self, fen: str) -> str:
        parts = fen.split()
        if len(parts) >= 2 and parts[1] == BLACK_TO_MOVE:
            return BLACK_TO_MOVE
        return WHITE_TO_MOVE


_default_oracle: ChessOracle | None = None


def default_oracle() -> ChessOracle:
    global _default_oracle
    if _default_oracle is None:
        _default_oracle = ChessOracle()
    return _default_oracle
