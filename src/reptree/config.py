"""Limits and default locations shared by the service, store and CLI."""

from __future__ import annotations

import os
from pathlib import Path

# Repertoire limits
MAX_REPERTOIRES = 50          # per owner
MAX_NAME_LEN = 100

# Import limits
MAX_PGN_SIZE = 10 * 1024 * 1024   # 10 MiB of PGN text per import
MAX_VARIATION_DEPTH = 64          # nested "(" levels accepted by the builder

DEFAULT_IMPORT_NAME = "Imported Repertoire"
DEFAULT_MERGED_IMPORT_NAME = "Merged Study"

_DEFAULT_DB = Path("data/repertoires.sqlite")
_DEFAULT_OWNER = "local"


def default_db_path() -> Path:
    """Return the repertoire database path.

    Resolution order:
    1. ``REPTREE_DB`` environment variable
    2. ``data/repertoires.sqlite`` relative to the working directory
    """
    env_val = os.environ.get("REPTREE_DB")
    if env_val:
        return Path(env_val)
    return _DEFAULT_DB


def default_owner() -> str:
    """Owner id used by the CLI when ``--owner`` is not given."""
    return os.environ.get("REPTREE_OWNER") or _DEFAULT_OWNER
