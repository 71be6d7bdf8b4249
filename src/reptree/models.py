"""Shared data-model types used across all modules."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

WHITE = "white"
BLACK = "black"
COLORS = (WHITE, BLACK)

# Side to move, as written in the second FEN field.
WHITE_TO_MOVE = "w"
BLACK_TO_MOVE = "b"


def new_id() -> str:
    """Fresh node / repertoire identifier."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


@dataclass
class RepertoireNode:
    """One position in a repertoire tree.

    ``children`` are owned exclusively by this node.  ``parent_id`` and
    ``transposition_of`` are plain id references resolved with
    :func:`reptree.tree.find_node`, never object links.
    """

    id: str
    fen: str                          # normalized: board, turn, castling, ep
    move: str | None = None           # SAN played from the parent; None at root
    move_number: int = 0
    color_to_move: str = WHITE_TO_MOVE
    parent_id: str | None = None
    comment: str | None = None
    transposition_of: str | None = None
    children: list[RepertoireNode] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.move is None

    def child_by_move(self, move: str) -> RepertoireNode | None:
        """Return the direct child reached by *move*, or None."""
        for child in self.children:
            if child.move is not None and child.move == move:
                return child
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON shape used for storage."""
        out: dict[str, Any] = {"id": self.id, "fen": self.fen}
        if self.move is not None:
            out["move"] = self.move
        out["moveNumber"] = self.move_number
        out["colorToMove"] = self.color_to_move
        if self.parent_id is not None:
            out["parentId"] = self.parent_id
        if self.comment is not None:
            out["comment"] = self.comment
        if self.transposition_of is not None:
            out["transpositionOf"] = self.transposition_of
        out["children"] = [child.to_dict() for child in self.children]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RepertoireNode:
        return cls(
            id=data["id"],
            fen=data["fen"],
            move=data.get("move"),
            move_number=int(data.get("moveNumber", 0)),
            color_to_move=data.get("colorToMove", WHITE_TO_MOVE),
            parent_id=data.get("parentId"),
            comment=data.get("comment"),
            transposition_of=data.get("transpositionOf"),
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )


@dataclass
class Metadata:
    """Aggregate counts derived from a tree; never authored directly."""

    total_nodes: int = 1
    total_moves: int = 0
    deepest_depth: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalNodes": self.total_nodes,
            "totalMoves": self.total_moves,
            "deepestDepth": self.deepest_depth,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Metadata:
        return cls(
            total_nodes=int(data.get("totalNodes", 1)),
            total_moves=int(data.get("totalMoves", 0)),
            deepest_depth=int(data.get("deepestDepth", 0)),
        )


# ---------------------------------------------------------------------------
# Repertoire
# ---------------------------------------------------------------------------


@dataclass
class Repertoire:
    """A named tree of one color's prepared opening lines."""

    id: str
    owner_id: str
    name: str
    color: str                 # 'white' or 'black' – whose moves are book
    tree: RepertoireNode
    metadata: Metadata
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "color": self.color,
            "treeData": self.tree.to_dict(),
            "metadata": self.metadata.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
