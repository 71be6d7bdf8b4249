"""Command-line entry-point for reptree.

Usage
-----
  reptree import repertoire.pgn --color white        (one repertoire per game)
  reptree merge <ID> <ID> --name "1.e4 complete"     (combine, delete sources)
  reptree transpositions <ID>                        (collapse move orders)
  reptree extract <ID> <NODE_ID>                     (split a branch out)

Run ``reptree <command> --help`` for full option listings.
"""

from __future__ import annotations

import contextlib
import json
import sys
from collections.abc import Iterator
from pathlib import Path

import click

from . import config
from .errors import MergePartialFailure, RepertoireError
from .export import export_pgn, repertoire_to_pgn
from .models import COLORS, Repertoire, RepertoireNode
from .service import RepertoireService
from .store import RepertoireStore
from .templates import STARTER_TEMPLATES
from .transpositions import find_transpositions


@click.group()
@click.option(
    "--db",
    "db_path",
    default=None,
    help="Path to the repertoire database. Defaults to $REPTREE_DB or data/repertoires.sqlite.",
)
@click.option(
    "--owner",
    default=None,
    help="Owner id the repertoires belong to. Defaults to $REPTREE_OWNER or 'local'.",
)
@click.option("--verbose", "-v", is_flag=True, help="Print progress messages.")
@click.pass_context
def main(ctx: click.Context, db_path: str | None, owner: str | None, verbose: bool) -> None:
    """reptree – build, merge and restructure opening repertoire trees.

    \b
    Commands:
      create / list / show / rename / delete   Manage repertoires.
      add / delete-node / comment              Edit a tree by hand.
      import / export                          PGN in and out.
      merge                                    Combine repertoires.
      transpositions                           Collapse transposed positions.
      extract                                  Split a branch into its own repertoire.
      templates / seed                         Starter repertoires.
    """
    ctx.obj = {
        "db": Path(db_path) if db_path else config.default_db_path(),
        "owner": owner or config.default_owner(),
        "verbose": verbose,
    }


@contextlib.contextmanager
def _service(ctx: click.Context) -> Iterator[RepertoireService]:
    """Open the store and translate engine errors into CLI errors."""
    with RepertoireStore(ctx.obj["db"]) as store:
        try:
            yield RepertoireService(store, verbose=ctx.obj["verbose"])
        except MergePartialFailure as exc:
            click.echo(f"Error: {exc}", err=True)
            click.echo(f"Merged repertoire kept: {exc.merged.id}", err=True)
            sys.exit(1)
        except RepertoireError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)


def _summary(rep: Repertoire) -> str:
    md = rep.metadata
    return (
        f"{rep.id}  {rep.color:<5}  {rep.name}  "
        f"({md.total_moves} moves, depth {md.deepest_depth})"
    )


def _move_label(node: RepertoireNode) -> str:
    dots = "." if node.color_to_move == "b" else "..."
    return f"{node.move_number}{dots}{node.move}"


def _echo_tree(root: RepertoireNode) -> None:
    stack: list[tuple[RepertoireNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if node.move is None:
            click.echo(f"(start)  [{node.id}]")
        else:
            line = f"{'  ' * depth}{_move_label(node)}  [{node.id}]"
            if node.transposition_of:
                line += f"  → {node.transposition_of}"
            if node.comment:
                line += f"  {{{node.comment}}}"
            click.echo(line)
        stack.extend((child, depth + 1) for child in reversed(node.children))


# ---------------------------------------------------------------------------
# Repertoire management
# ---------------------------------------------------------------------------


@main.command("create")
@click.argument("name")
@click.option("--color", required=True, type=click.Choice(COLORS), help="Side the repertoire is for.")
@click.pass_context
def create_cmd(ctx: click.Context, name: str, color: str) -> None:
    """Create an empty repertoire."""
    with _service(ctx) as svc:
        rep = svc.create_repertoire(ctx.obj["owner"], name, color)
    click.echo(_summary(rep))


@main.command("list")
@click.option("--color", default=None, type=click.Choice(COLORS), help="Only list this color.")
@click.pass_context
def list_cmd(ctx: click.Context, color: str | None) -> None:
    """List repertoires."""
    with _service(ctx) as svc:
        reps = svc.list_repertoires(ctx.obj["owner"], color)
    if not reps:
        click.echo("[reptree] No repertoires.")
    for rep in reps:
        click.echo(_summary(rep))


@main.command("show")
@click.argument("repertoire_id")
@click.option("--json", "as_json", is_flag=True, help="Print the stored JSON document.")
@click.pass_context
def show_cmd(ctx: click.Context, repertoire_id: str, as_json: bool) -> None:
    """Print a repertoire's tree."""
    with _service(ctx) as svc:
        rep = svc.get_repertoire(repertoire_id)
    if as_json:
        click.echo(json.dumps(rep.to_dict(), indent=2))
        return
    click.echo(_summary(rep))
    _echo_tree(rep.tree)


@main.command("rename")
@click.argument("repertoire_id")
@click.argument("name")
@click.pass_context
def rename_cmd(ctx: click.Context, repertoire_id: str, name: str) -> None:
    """Rename a repertoire."""
    with _service(ctx) as svc:
        rep = svc.rename_repertoire(repertoire_id, name)
    click.echo(_summary(rep))


@main.command("delete")
@click.argument("repertoire_id")
@click.pass_context
def delete_cmd(ctx: click.Context, repertoire_id: str) -> None:
    """Delete a repertoire."""
    with _service(ctx) as svc:
        svc.delete_repertoire(repertoire_id)
    click.echo(f"[reptree] Deleted {repertoire_id}.")


# ---------------------------------------------------------------------------
# Node editing
# ---------------------------------------------------------------------------


@main.command("add")
@click.argument("repertoire_id")
@click.argument("parent_id")
@click.argument("move")
@click.pass_context
def add_cmd(ctx: click.Context, repertoire_id: str, parent_id: str, move: str) -> None:
    """Add MOVE (SAN) below node PARENT_ID."""
    with _service(ctx) as svc:
        rep = svc.add_node(repertoire_id, parent_id, move)
    click.echo(_summary(rep))


@main.command("delete-node")
@click.argument("repertoire_id")
@click.argument("node_id")
@click.pass_context
def delete_node_cmd(ctx: click.Context, repertoire_id: str, node_id: str) -> None:
    """Delete a node and everything below it."""
    with _service(ctx) as svc:
        rep = svc.delete_node(repertoire_id, node_id)
    click.echo(_summary(rep))


@main.command("comment")
@click.argument("repertoire_id")
@click.argument("node_id")
@click.argument("text", default="")
@click.pass_context
def comment_cmd(ctx: click.Context, repertoire_id: str, node_id: str, text: str) -> None:
    """Set a node's comment (omit TEXT to clear it)."""
    with _service(ctx) as svc:
        rep = svc.update_node_comment(repertoire_id, node_id, text)
    click.echo(_summary(rep))


# ---------------------------------------------------------------------------
# PGN
# ---------------------------------------------------------------------------


@main.command("import")
@click.argument("pgn_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Repertoire name. Defaults to the Event tag.")
@click.option(
    "--color",
    default=None,
    type=click.Choice(COLORS),
    help="Repertoire color. Defaults to the Orientation tag, else white.",
)
@click.option(
    "--merge",
    "merge_games",
    is_flag=True,
    help="Merge all games into a single repertoire instead of one per game.",
)
@click.pass_context
def import_cmd(
    ctx: click.Context,
    pgn_file: Path,
    name: str | None,
    color: str | None,
    merge_games: bool,
) -> None:
    """Import repertoires from a PGN file."""
    text = pgn_file.read_text(encoding="utf-8", errors="replace")
    with _service(ctx) as svc:
        if merge_games:
            reps = [svc.import_pgn_merged(ctx.obj["owner"], text, name=name, color=color)]
        else:
            reps = svc.import_pgn(ctx.obj["owner"], text, name=name, color=color)
    for rep in reps:
        click.echo(_summary(rep))


@main.command("export")
@click.argument("repertoire_ids", nargs=-1, required=True)
@click.option(
    "--output",
    "-o",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write to this file instead of stdout.",
)
@click.pass_context
def export_cmd(ctx: click.Context, repertoire_ids: tuple[str, ...], output: Path | None) -> None:
    """Export repertoires as PGN."""
    with _service(ctx) as svc:
        reps = [svc.get_repertoire(rid) for rid in repertoire_ids]
        if output is None:
            texts = [repertoire_to_pgn(rep) for rep in reps]
        else:
            export_pgn(reps, output)
    if output is None:
        for text in texts:
            click.echo(text)
            click.echo()
        return
    click.echo(f"[reptree] Exported {len(reps)} repertoire(s) → {output}")


# ---------------------------------------------------------------------------
# Restructuring
# ---------------------------------------------------------------------------


@main.command("merge")
@click.argument("repertoire_ids", nargs=-1, required=True)
@click.option("--name", required=True, help="Name of the merged repertoire.")
@click.pass_context
def merge_cmd(ctx: click.Context, repertoire_ids: tuple[str, ...], name: str) -> None:
    """Merge repertoires into a new one and delete the sources.

    \b
    Sources are applied in the order given; when two sources comment the
    same move, the first one's comment is kept.
    """
    with _service(ctx) as svc:
        rep = svc.merge_repertoires(ctx.obj["owner"], list(repertoire_ids), name)
    click.echo(_summary(rep))


@main.command("transpositions")
@click.argument("repertoire_id")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Only list the positions that would be collapsed.",
)
@click.pass_context
def transpositions_cmd(ctx: click.Context, repertoire_id: str, dry_run: bool) -> None:
    """Collapse positions reached by different move orders."""
    with _service(ctx) as svc:
        if dry_run:
            rep = svc.get_repertoire(repertoire_id)
            groups = find_transpositions(rep.tree)
            if not groups:
                click.echo("[transpositions] None found.")
            for (fen, move_number), ids in groups.items():
                click.echo(f"move {move_number}  {fen}")
                click.echo(f"  canonical: {ids[0]}")
                for dup in ids[1:]:
                    click.echo(f"  duplicate: {dup}")
            return
        rep = svc.merge_transpositions(repertoire_id)
    click.echo(_summary(rep))


@main.command("extract")
@click.argument("repertoire_id")
@click.argument("node_id")
@click.option("--name", default="", help="Name of the new repertoire. Defaults to '<name> - <move>'.")
@click.pass_context
def extract_cmd(ctx: click.Context, repertoire_id: str, node_id: str, name: str) -> None:
    """Move NODE_ID's branch into a new repertoire."""
    with _service(ctx) as svc:
        original, extracted = svc.extract_subtree(ctx.obj["owner"], repertoire_id, node_id, name)
    click.echo(_summary(original))
    click.echo(_summary(extracted))


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@main.command("templates")
def templates_cmd() -> None:
    """List the starter templates."""
    for tmpl in STARTER_TEMPLATES:
        click.echo(f"{tmpl.id:<14} {tmpl.color:<5}  {tmpl.name}  {tmpl.description}")


@main.command("seed")
@click.argument("template_ids", nargs=-1, required=True)
@click.pass_context
def seed_cmd(ctx: click.Context, template_ids: tuple[str, ...]) -> None:
    """Create repertoires from starter templates."""
    with _service(ctx) as svc:
        reps = svc.seed_repertoires(ctx.obj["owner"], list(template_ids))
    for rep in reps:
        click.echo(_summary(rep))
