"""Exception taxonomy for the repertoire engine.

Every error raised by :mod:`reptree` derives from :class:`RepertoireError` and
falls into one of four families:

* :class:`ParseError` – the notation could not be turned into a tree.
* :class:`StructuralError` – a tree operation referenced a node that does not
  exist, or would break the tree's invariants.
* :class:`PolicyError` – the request violates a naming, color or quota rule.
* :class:`NotFoundError` – the persistence layer has no such repertoire.

Nothing inside the engine catches these; they propagate to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Repertoire


class RepertoireError(Exception):
    """Base class for every error raised by reptree."""


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(RepertoireError):
    pass


class IllegalMove(ParseError):
    def __init__(self, move: str, fen: str, reason: str = "") -> None:
        self.move = move
        self.fen = fen
        msg = f"illegal move {move!r} in position {fen!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UnexpectedToken(ParseError):
    pass


class CustomStartingPosition(ParseError):
    def __init__(self, fen: str) -> None:
        self.fen = fen
        super().__init__(
            "game uses a custom starting position and cannot be imported "
            f"as a repertoire: {fen!r}"
        )


class VariationTooDeep(ParseError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"variations nested deeper than {limit} levels")


class NoGamesFound(ParseError):
    def __init__(self) -> None:
        super().__init__("no importable games found in PGN")


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------


class StructuralError(RepertoireError):
    pass


class NodeNotFound(StructuralError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"node not found: {node_id}")


class ParentNotFound(StructuralError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"parent node not found: {node_id}")


class MoveAlreadyExists(StructuralError):
    def __init__(self, move: str) -> None:
        self.move = move
        super().__init__(f"move already exists: {move}")


class CannotDeleteRoot(StructuralError):
    def __init__(self) -> None:
        super().__init__("cannot delete root node")


class CannotExtractRoot(StructuralError):
    def __init__(self) -> None:
        super().__init__("cannot extract root node")


class CannotCommentRoot(StructuralError):
    def __init__(self) -> None:
        super().__init__("the root node cannot carry a comment")


class CannotExtendTransposition(StructuralError):
    def __init__(self, node_id: str, canonical_id: str) -> None:
        self.node_id = node_id
        self.canonical_id = canonical_id
        super().__init__(
            f"node {node_id} is a transposition of {canonical_id}; "
            "add moves to that node instead"
        )


# ---------------------------------------------------------------------------
# Policy errors
# ---------------------------------------------------------------------------


class PolicyError(RepertoireError):
    pass


class NameRequired(PolicyError):
    def __init__(self) -> None:
        super().__init__("name is required")


class NameTooLong(PolicyError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"name must be {limit} characters or less")


class LimitReached(PolicyError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"maximum repertoire limit reached ({limit})")


class InvalidColor(PolicyError):
    def __init__(self, color: str) -> None:
        self.color = color
        super().__init__(f"color must be 'white' or 'black', got {color!r}")


class MergeMinimumTwo(PolicyError):
    def __init__(self) -> None:
        super().__init__("at least two repertoires are required to merge")


class MergeColorMismatch(PolicyError):
    def __init__(self) -> None:
        super().__init__("cannot merge repertoires of different colors")


class MergeDuplicateIds(PolicyError):
    def __init__(self) -> None:
        super().__init__("duplicate repertoire IDs")


class MixedColors(PolicyError):
    def __init__(self) -> None:
        super().__init__("games have different orientations and cannot be merged")


class PgnTooLarge(PolicyError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"PGN must be {limit} bytes or less")


class UnknownTemplate(PolicyError):
    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(f"unknown template: {template_id}")


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class NotFoundError(RepertoireError):
    pass


class RepertoireNotFound(NotFoundError):
    def __init__(self, repertoire_id: str) -> None:
        self.repertoire_id = repertoire_id
        super().__init__(f"repertoire not found: {repertoire_id}")


class MergePartialFailure(RepertoireError):
    """The merged repertoire was saved but some sources could not be deleted.

    The merged repertoire is kept; ``undeleted`` lists the source ids that
    still exist and ``merged`` is the saved result.
    """

    def __init__(
        self,
        merged: "Repertoire",
        undeleted: list[str],
        cause: Exception,
    ) -> None:
        self.merged = merged
        self.undeleted = undeleted
        self.cause = cause
        super().__init__(
            f"merged repertoire {merged.id} saved, but failed to delete "
            f"source repertoire(s) {', '.join(undeleted)}: {cause}"
        )
