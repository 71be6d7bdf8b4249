"""Build a repertoire tree from PGN movetext.

How it works
------------
The builder consumes the flat token stream from :mod:`reptree.tokenizer`
and keeps an explicit stack of frames, each a ``(node, fen)`` pair: the node
the current line has reached and the full six-field FEN of that position.

* A **move** is checked with the oracle and either re-enters an existing
  child with the same SAN (so ``1. e4 e5 (1... e5 2. Nf3)`` does not create a
  second ``e5`` branch) or appends a new child.
* ``(`` opens a side line that replaces the move just played, so the new
  frame starts at the *parent* of the current node.  Positions are not
  stored on nodes; the parent's position is recomputed by replaying the
  moves from the root.
* ``)`` closes the innermost side line.  The root frame is never popped, so
  stray closing parentheses are ignored.
* Comments attach to the node the current line has reached (never the
  root).  Move numbers, NAGs and results carry no structure.

Whole PGN games
---------------
:func:`parse_pgn` splits the tag section off a single game and rejects games
set up from a custom position.  :func:`split_games` cuts a multi-game file
(e.g. a Lichess study export, one chapter per game) into single games.
"""

from __future__ import annotations

from collections.abc import Iterable

from . import config
from .errors import CustomStartingPosition, IllegalMove, UnexpectedToken, VariationTooDeep
from .models import BLACK, WHITE, RepertoireNode, new_id
from .oracle import STARTING_FEN, Oracle, default_oracle, is_standard_start, normalize_fen
from .tokenizer import Token, TokenKind, tokenize
from .tree import child_move_number, find_parent, find_path, new_root


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_tree(
    tokens: Iterable[Token],
    starting_fen: str = STARTING_FEN,
    *,
    oracle: Oracle | None = None,
    max_variation_depth: int = config.MAX_VARIATION_DEPTH,
) -> RepertoireNode:
    """Build a tree from *tokens*, starting at the standard position.

    Raises
    ------
    CustomStartingPosition
        *starting_fen* is not the standard starting position.
    IllegalMove
        A move is not legal in the position the line has reached.
    VariationTooDeep
        Side lines are nested more than *max_variation_depth* levels.
    """
    if not is_standard_start(starting_fen):
        raise CustomStartingPosition(starting_fen)

    oracle = oracle or default_oracle()
    root = new_root()

    # The root frame always sits at index 0.
    stack: list[tuple[RepertoireNode, str]] = [(root, STARTING_FEN)]

    for tok in tokens:
        kind = tok.kind

        if kind in (TokenKind.MOVE_NUMBER, TokenKind.NAG, TokenKind.RESULT):
            continue

        if kind is TokenKind.COMMENT:
            text = tok.value.strip()
            if text and stack:
                node = stack[-1][0]
                if node.move is not None:
                    node.comment = text
            continue

        if kind is TokenKind.MOVE:
            if not stack:
                raise UnexpectedToken(f"move {tok.value!r} outside of any line")
            node, fen = stack[-1]
            stack[-1] = _play(node, fen, tok.value, oracle)
            continue

        if kind is TokenKind.VARIATION_START:
            if not stack:
                raise UnexpectedToken("variation start outside of any line")
            if len(stack) > max_variation_depth:
                raise VariationTooDeep(max_variation_depth)
            node = stack[-1][0]
            parent = find_parent(root, node.id) or root
            stack.append((parent, _replay_to(root, parent, oracle)))
            continue

        if kind is TokenKind.VARIATION_END:
            if len(stack) > 1:
                stack.pop()
            continue

    return root


def parse_movetext(
    movetext: str,
    starting_fen: str = STARTING_FEN,
    *,
    oracle: Oracle | None = None,
) -> RepertoireNode:
    """Tokenize and build in one step."""
    return build_tree(tokenize(movetext), starting_fen, oracle=oracle)


def parse_pgn(
    pgn_text: str,
    *,
    oracle: Oracle | None = None,
) -> tuple[RepertoireNode, dict[str, str]]:
    """Parse one PGN game (tags + movetext) into ``(root, headers)``.

    A ``FEN`` tag other than the standard start raises
    :class:`~reptree.errors.CustomStartingPosition`.
    """
    headers, movetext = split_headers(pgn_text)
    starting_fen = headers.get("FEN") or STARTING_FEN
    root = build_tree(tokenize(movetext), starting_fen, oracle=oracle)
    return root, headers


def split_headers(pgn_text: str) -> tuple[dict[str, str], str]:
    """Separate the leading ``[Tag "value"]`` lines from the movetext."""
    headers: dict[str, str] = {}
    lines = pgn_text.splitlines()
    movetext_start = 0

    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            parts = stripped[1:-1].split(" ", 1)
            if len(parts) == 2:
                headers[parts[0]] = parts[1].strip().strip('"')
            movetext_start = i + 1
        elif not stripped and movetext_start == i:
            movetext_start = i + 1
        elif stripped:
            break

    return headers, "\n".join(lines[movetext_start:])


def split_games(pgn_text: str) -> list[str]:
    """Split a multi-game PGN into one string per game.

    A new game starts at a tag line that follows movetext.  Chunks with
    neither tags nor moves are dropped.
    """
    games: list[str] = []
    current: list[str] = []
    seen_movetext = False

    for line in pgn_text.splitlines():
        stripped = line.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            if seen_movetext:
                games.append("\n".join(current).strip())
                current = []
                seen_movetext = False
        elif stripped:
            seen_movetext = True
        current.append(line)

    tail = "\n".join(current).strip()
    if tail:
        games.append(tail)
    return [g for g in games if g]


def color_from_headers(headers: dict[str, str], default: str = WHITE) -> str:
    """Repertoire color from a Lichess-style ``Orientation`` tag."""
    orientation = headers.get("Orientation", "").strip().lower()
    if orientation == BLACK:
        return BLACK
    if orientation == WHITE:
        return WHITE
    return default


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _play(
    node: RepertoireNode,
    fen: str,
    san: str,
    oracle: Oracle,
) -> tuple[RepertoireNode, str]:
    """Advance one frame by *san*; returns the new ``(node, fen)``."""
    if not oracle.is_legal(fen, san):
        raise IllegalMove(san, fen)
    next_fen = oracle.apply(fen, san)

    existing = node.child_by_move(san)
    if existing is not None:
        return existing, next_fen

    child = RepertoireNode(
        id=new_id(),
        fen=normalize_fen(next_fen),
        move=san,
        move_number=child_move_number(node),
        color_to_move=oracle.side_to_move(next_fen),
        parent_id=node.id,
    )
    node.children.append(child)
    return child, next_fen


def _replay_to(root: RepertoireNode, target: RepertoireNode, oracle: Oracle) -> str:
    """Full FEN of *target*, recomputed by replaying moves from the root."""
    fen = STARTING_FEN
    path = find_path(root, target.id) or [root]
    for node in path[1:]:
        if node.move is not None:
            fen = oracle.apply(fen, node.move)
    return fen
