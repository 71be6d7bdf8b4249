"""SQLite-backed persistence for repertoires.

Each repertoire is one row; the tree and its metadata are stored as JSON
documents and always read and written whole.  Concurrent writers to the same
repertoire race with last-writer-wins semantics.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from .errors import RepertoireNotFound
from .models import Metadata, Repertoire, RepertoireNode, new_id
from .tree import compute_metadata, new_root


class RepertoireStore:
    """Persistent repertoire table keyed by id.

    Thread-safe: a threading.Lock serialises all connection access so the
    single sqlite3.Connection can be safely shared across threads.
    """

    def __init__(self, db_path: Path) -> None:
        if str(db_path) != ":memory:":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(db_path),
            check_same_thread=False,
        )
        self._lock = threading.Lock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_table()

    def _create_table(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS repertoires (
                    id         TEXT PRIMARY KEY,
                    owner_id   TEXT NOT NULL,
                    name       TEXT NOT NULL,
                    color      TEXT NOT NULL,
                    tree       TEXT NOT NULL,
                    metadata   TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS repertoires_owner ON repertoires (owner_id)"
            )
            self._conn.commit()

    # -- reads ---------------------------------------------------------------

    def get_by_id(self, repertoire_id: str) -> Repertoire:
        """Return the repertoire or raise :class:`RepertoireNotFound`."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM repertoires WHERE id = ?",
                (repertoire_id,),
            ).fetchone()
        if row is None:
            raise RepertoireNotFound(repertoire_id)
        return _from_row(row)

    def list_for_owner(self, owner_id: str, color: str | None = None) -> list[Repertoire]:
        """All of *owner_id*'s repertoires, oldest first, optionally by color."""
        query = f"SELECT {_COLUMNS} FROM repertoires WHERE owner_id = ?"
        params: tuple[str, ...] = (owner_id,)
        if color is not None:
            query += " AND color = ?"
            params += (color,)
        query += " ORDER BY created_at, rowid"
        with self._lock:
            rows = self._conn.execute(query, params).fetchall()
        return [_from_row(row) for row in rows]

    def count_for_owner(self, owner_id: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM repertoires WHERE owner_id = ?",
                (owner_id,),
            ).fetchone()
        return int(row[0])

    def exists(self, repertoire_id: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM repertoires WHERE id = ?",
                (repertoire_id,),
            ).fetchone()
        return row is not None

    # -- writes --------------------------------------------------------------

    def create(self, owner_id: str, name: str, color: str) -> Repertoire:
        """Insert a repertoire whose tree is a bare starting-position root."""
        now = _now()
        tree = new_root()
        rep = Repertoire(
            id=new_id(),
            owner_id=owner_id,
            name=name,
            color=color,
            tree=tree,
            metadata=compute_metadata(tree),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._conn.execute(
                f"INSERT INTO repertoires ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    rep.id,
                    rep.owner_id,
                    rep.name,
                    rep.color,
                    json.dumps(rep.tree.to_dict()),
                    json.dumps(rep.metadata.to_dict()),
                    now.isoformat(),
                    now.isoformat(),
                ),
            )
            self._conn.commit()
        return rep

    def save(
        self,
        repertoire_id: str,
        tree: RepertoireNode,
        metadata: Metadata,
    ) -> Repertoire:
        """Replace the tree and metadata of an existing repertoire."""
        with self._lock:
            cur = self._conn.execute(
                """
                UPDATE repertoires SET tree = ?, metadata = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    json.dumps(tree.to_dict()),
                    json.dumps(metadata.to_dict()),
                    _now().isoformat(),
                    repertoire_id,
                ),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise RepertoireNotFound(repertoire_id)
        return self.get_by_id(repertoire_id)

    def update_name(self, repertoire_id: str, name: str) -> Repertoire:
        with self._lock:
            cur = self._conn.execute(
                "UPDATE repertoires SET name = ?, updated_at = ? WHERE id = ?",
                (name, _now().isoformat(), repertoire_id),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise RepertoireNotFound(repertoire_id)
        return self.get_by_id(repertoire_id)

    def delete(self, repertoire_id: str) -> None:
        with self._lock:
            cur = self._conn.execute(
                "DELETE FROM repertoires WHERE id = ?",
                (repertoire_id,),
            )
            self._conn.commit()
        if cur.rowcount == 0:
            raise RepertoireNotFound(repertoire_id)

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "RepertoireStore":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

_COLUMNS = "id, owner_id, name, color, tree, metadata, created_at, updated_at"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _from_row(row: tuple) -> Repertoire:
    return Repertoire(
        id=row[0],
        owner_id=row[1],
        name=row[2],
        color=row[3],
        tree=RepertoireNode.from_dict(json.loads(row[4])),
        metadata=Metadata.from_dict(json.loads(row[5])),
        created_at=datetime.fromisoformat(row[6]),
        updated_at=datetime.fromisoformat(row[7]),
    )
