"""Repertoire operations that combine the tree engine with persistence.

The tree algorithms in :mod:`reptree.merge`, :mod:`reptree.transpositions`
and :mod:`reptree.extract` are pure.  This module adds what a caller needs
around them: name, color and quota checks, fetching sources from the store,
recomputing metadata and saving results.

Quota
-----
Every operation that creates a repertoire first checks the owner's count
against ``max_repertoires``.  The check and the insert are not atomic; the
store has no owner-level lock.

Merge partial failure
---------------------
:meth:`RepertoireService.merge_repertoires` saves the merged repertoire
before deleting its sources.  If a deletion fails the merged repertoire is
kept and :class:`~reptree.errors.MergePartialFailure` reports which sources
are still present.
"""

from __future__ import annotations

from . import config
from .builder import color_from_headers, parse_pgn, split_games
from .errors import (
    CannotCommentRoot,
    CannotDeleteRoot,
    CannotExtendTransposition,
    CustomStartingPosition,
    IllegalMove,
    InvalidColor,
    LimitReached,
    MergeColorMismatch,
    MergeDuplicateIds,
    MergeMinimumTwo,
    MergePartialFailure,
    MixedColors,
    MoveAlreadyExists,
    NameRequired,
    NameTooLong,
    NoGamesFound,
    NodeNotFound,
    ParentNotFound,
    PgnTooLarge,
    UnknownTemplate,
)
from .extract import default_extract_name
from .extract import extract_subtree as _extract_subtree
from .merge import merge_into, merge_trees
from .models import COLORS, WHITE, Repertoire, RepertoireNode, new_id
from .oracle import Oracle, default_oracle, normalize_fen
from .store import RepertoireStore
from .templates import build_template_tree, get_template
from .transpositions import canonicalize
from .tree import child_move_number, compute_metadata, delete_by_id, find_node, iter_nodes


class RepertoireService:
    """Application-level repertoire operations.

    Parameters
    ----------
    store:
        Persistence collaborator (normally a :class:`RepertoireStore`).
    oracle:
        Chess rules; defaults to the python-chess oracle.
    max_repertoires:
        Per-owner repertoire cap.
    max_name_len:
        Maximum repertoire name length after trimming.
    verbose:
        Print progress messages.
    """

    def __init__(
        self,
        store: RepertoireStore,
        *,
        oracle: Oracle | None = None,
        max_repertoires: int = config.MAX_REPERTOIRES,
        max_name_len: int = config.MAX_NAME_LEN,
        verbose: bool = False,
    ) -> None:
        self._store = store
        self._oracle = oracle or default_oracle()
        self._max_repertoires = max_repertoires
        self._max_name_len = max_name_len
        self._verbose = verbose

    # -----------------------------------------------------------------------
    # Repertoire CRUD
    # -----------------------------------------------------------------------

    def create_repertoire(self, owner_id: str, name: str, color: str) -> Repertoire:
        self._check_color(color)
        name = self._check_name(name)
        self._check_limit(owner_id)
        return self._store.create(owner_id, name, color)

    def get_repertoire(self, repertoire_id: str) -> Repertoire:
        return self._store.get_by_id(repertoire_id)

    def list_repertoires(self, owner_id: str, color: str | None = None) -> list[Repertoire]:
        if color is not None:
            self._check_color(color)
        return self._store.list_for_owner(owner_id, color)

    def rename_repertoire(self, repertoire_id: str, name: str) -> Repertoire:
        name = self._check_name(name)
        return self._store.update_name(repertoire_id, name)

    def delete_repertoire(self, repertoire_id: str) -> None:
        self._store.delete(repertoire_id)

    def save_tree(self, repertoire_id: str, tree: RepertoireNode) -> Repertoire:
        """Replace a repertoire's whole tree."""
        self._store.get_by_id(repertoire_id)
        return self._store.save(repertoire_id, tree, compute_metadata(tree))

    # -----------------------------------------------------------------------
    # Node editing
    # -----------------------------------------------------------------------

    def add_node(self, repertoire_id: str, parent_id: str, move: str) -> Repertoire:
        """Append the SAN *move* below *parent_id*.

        FEN, side to move and move number are computed from the parent.
        Transposition pointers take no moves; their canonical node does.
        """
        rep = self._store.get_by_id(repertoire_id)

        parent = find_node(rep.tree, parent_id)
        if parent is None:
            raise ParentNotFound(parent_id)
        if parent.transposition_of is not None:
            raise CannotExtendTransposition(parent.id, parent.transposition_of)

        move = move.strip()
        if parent.child_by_move(move) is not None:
            raise MoveAlreadyExists(move)

        if not self._oracle.is_legal(parent.fen, move):
            raise IllegalMove(move, parent.fen)
        next_fen = self._oracle.apply(parent.fen, move)

        parent.children.append(
            RepertoireNode(
                id=new_id(),
                fen=normalize_fen(next_fen),
                move=move,
                move_number=child_move_number(parent),
                color_to_move=self._oracle.side_to_move(next_fen),
                parent_id=parent.id,
            )
        )
        return self._store.save(repertoire_id, rep.tree, compute_metadata(rep.tree))

    def delete_node(self, repertoire_id: str, node_id: str) -> Repertoire:
        """Remove a node and its whole subtree."""
        rep = self._store.get_by_id(repertoire_id)
        if rep.tree.id == node_id:
            raise CannotDeleteRoot()

        pruned = delete_by_id(rep.tree, node_id)
        if pruned is None:
            raise NodeNotFound(node_id)
        return self._store.save(repertoire_id, pruned, compute_metadata(pruned))

    def update_node_comment(self, repertoire_id: str, node_id: str, comment: str) -> Repertoire:
        """Set a node's comment; blank text clears it."""
        rep = self._store.get_by_id(repertoire_id)
        node = find_node(rep.tree, node_id)
        if node is None:
            raise NodeNotFound(node_id)
        if node.move is None:
            raise CannotCommentRoot()

        comment = comment.strip()
        node.comment = comment or None
        return self._store.save(repertoire_id, rep.tree, compute_metadata(rep.tree))

    # -----------------------------------------------------------------------
    # Merge
    # -----------------------------------------------------------------------

    def merge_repertoires(self, owner_id: str, ids: list[str], name: str) -> Repertoire:
        """Merge two or more same-colored repertoires into a new one.

        The sources are deleted once the merged repertoire is saved.
        """
        if len(ids) < 2:
            raise MergeMinimumTwo()
        name = self._check_name(name)
        if len(set(ids)) != len(ids):
            raise MergeDuplicateIds()

        sources = [self._store.get_by_id(rid) for rid in ids]

        color = sources[0].color
        if any(rep.color != color for rep in sources[1:]):
            raise MergeColorMismatch()

        self._check_limit(owner_id)

        if self._verbose:
            print(f"[merge] Merging {len(sources)} repertoires into {name!r} …", flush=True)

        target = self._store.create(owner_id, name, color)
        for rep in sources:
            merge_into(target.tree, rep.tree)

        metadata = compute_metadata(target.tree)
        merged = self._store.save(target.id, target.tree, metadata)

        if self._verbose:
            print(
                f"[merge] Saved {merged.id}: {metadata.total_nodes} nodes, "
                f"depth {metadata.deepest_depth}.",
                flush=True,
            )

        for i, rid in enumerate(ids):
            try:
                self._store.delete(rid)
            except Exception as exc:
                raise MergePartialFailure(merged, list(ids[i:]), exc) from exc

        if self._verbose:
            print(f"[merge] Deleted {len(ids)} source repertoires.", flush=True)
        return merged

    def merge_transpositions(self, repertoire_id: str) -> Repertoire:
        """Collapse transposed positions of one repertoire in place."""
        rep = self._store.get_by_id(repertoire_id)
        tree = canonicalize(rep.tree)
        metadata = compute_metadata(tree)
        if self._verbose:
            pointers = sum(
                1 for node in iter_nodes(tree) if node.transposition_of is not None
            )
            print(
                f"[transpositions] {rep.name}: {pointers} transposition "
                f"pointer(s), {metadata.total_nodes} nodes.",
                flush=True,
            )
        return self._store.save(repertoire_id, tree, metadata)

    # -----------------------------------------------------------------------
    # Extract
    # -----------------------------------------------------------------------

    def extract_subtree(
        self,
        owner_id: str,
        repertoire_id: str,
        node_id: str,
        name: str = "",
    ) -> tuple[Repertoire, Repertoire]:
        """Move *node_id*'s subtree into a new repertoire.

        Returns ``(pruned_original, extracted)``.  With no *name* the new
        repertoire is called ``"<original name> - <move>"``.
        """
        rep = self._store.get_by_id(repertoire_id)

        pruned, extracted = _extract_subtree(rep.tree, node_id)

        name = name.strip()
        if not name:
            target = find_node(rep.tree, node_id)
            name = default_extract_name(rep.name, target)
        name = self._check_name(name)

        self._check_limit(owner_id)

        new_rep = self._store.create(owner_id, name, rep.color)
        saved_new = self._store.save(new_rep.id, extracted, compute_metadata(extracted))
        saved_original = self._store.save(repertoire_id, pruned, compute_metadata(pruned))

        if self._verbose:
            print(
                f"[extract] {rep.name!r} → {name!r}: "
                f"{saved_new.metadata.total_nodes} nodes extracted, "
                f"{saved_original.metadata.total_nodes} left.",
                flush=True,
            )
        return saved_original, saved_new

    # -----------------------------------------------------------------------
    # Import / seed
    # -----------------------------------------------------------------------

    def import_pgn(
        self,
        owner_id: str,
        pgn_text: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> list[Repertoire]:
        """Create one repertoire per game in *pgn_text*.

        Every game is parsed before anything is written, so a parse error
        leaves the store untouched.
        """
        self._check_size(pgn_text)
        if color is not None:
            self._check_color(color)

        parsed = [parse_pgn(game, oracle=self._oracle) for game in split_games(pgn_text)]
        if not parsed:
            raise NoGamesFound()
        if self._verbose:
            print(f"[import] {len(parsed)} game(s) parsed.", flush=True)

        created: list[Repertoire] = []
        for tree, headers in parsed:
            rep_name = (
                name
                or _event_name(headers)[: self._max_name_len]
                or config.DEFAULT_IMPORT_NAME
            )
            rep_color = color or color_from_headers(headers, WHITE)
            rep = self.create_repertoire(owner_id, rep_name, rep_color)
            created.append(self._store.save(rep.id, tree, compute_metadata(tree)))
            if self._verbose:
                print(
                    f"[import] {rep.name!r} ({rep_color}): "
                    f"{created[-1].metadata.total_moves} moves.",
                    flush=True,
                )
        return created

    def import_pgn_merged(
        self,
        owner_id: str,
        pgn_text: str,
        *,
        name: str | None = None,
        color: str | None = None,
    ) -> Repertoire:
        """Merge every game of *pgn_text* into a single repertoire.

        Games set up from a custom position are skipped.  All games must
        share one ``Orientation`` unless *color* is given.
        """
        self._check_size(pgn_text)
        if color is not None:
            self._check_color(color)

        trees: list[RepertoireNode] = []
        detected: str | None = None
        study_name = ""

        for i, game in enumerate(split_games(pgn_text)):
            try:
                tree, headers = parse_pgn(game, oracle=self._oracle)
            except CustomStartingPosition:
                if self._verbose:
                    print(f"[import] Skipping game {i}: custom starting position", flush=True)
                continue

            if not study_name:
                # Lichess study chapters are titled "<study>: <chapter>".
                study_name = _event_name(headers).split(": ", 1)[0]

            game_color = color or color_from_headers(headers, WHITE)
            if detected is None:
                detected = game_color
            elif game_color != detected:
                raise MixedColors()
            trees.append(tree)

        if not trees or detected is None:
            raise NoGamesFound()

        rep_name = name or study_name[: self._max_name_len] or config.DEFAULT_MERGED_IMPORT_NAME
        rep = self.create_repertoire(owner_id, rep_name, detected)
        merged = merge_trees(trees)
        return self._store.save(rep.id, merged, compute_metadata(merged))

    def seed_repertoires(self, owner_id: str, template_ids: list[str]) -> list[Repertoire]:
        """Create starter repertoires from templates."""
        templates = []
        for tid in template_ids:
            tmpl = get_template(tid)
            if tmpl is None:
                raise UnknownTemplate(tid)
            templates.append(tmpl)

        created: list[Repertoire] = []
        for tmpl in templates:
            tree = build_template_tree(tmpl, oracle=self._oracle)
            self._check_limit(owner_id)
            rep = self._store.create(owner_id, tmpl.name, tmpl.color)
            created.append(self._store.save(rep.id, tree, compute_metadata(tree)))
        return created

    # -----------------------------------------------------------------------
    # Policy checks
    # -----------------------------------------------------------------------

    def _check_name(self, name: str) -> str:
        name = name.strip()
        if not name:
            raise NameRequired()
        if len(name) > self._max_name_len:
            raise NameTooLong(self._max_name_len)
        return name

    def _check_limit(self, owner_id: str) -> None:
        if self._store.count_for_owner(owner_id) >= self._max_repertoires:
            raise LimitReached(self._max_repertoires)

    @staticmethod
    def _check_color(color: str) -> None:
        if color not in COLORS:
            raise InvalidColor(color)

    @staticmethod
    def _check_size(pgn_text: str) -> None:
        if len(pgn_text.encode("utf-8")) > config.MAX_PGN_SIZE:
            raise PgnTooLarge(config.MAX_PGN_SIZE)


def _event_name(headers: dict[str, str]) -> str:
    """The ``Event`` tag, or "" for the PGN placeholder ``?``."""
    event = headers.get("Event", "").strip()
    return "" if event == "?" else event
