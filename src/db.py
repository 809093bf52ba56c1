"""Shared SQLite helpers: WAL mode, foreign keys, row_factory defaults."""

import sqlite3
from pathlib import Path


def wal_connect(
    db_path: str | Path,
    row_factory: bool = False,
    foreign_keys: bool = True,
) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file. Parent dirs are created.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        foreign_keys: Enforce FK constraints (needed for ON DELETE CASCADE).
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA journal_mode=WAL")
    if foreign_keys:
        conn.execute("PRAGMA foreign_keys=ON")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
