"""Multi-tenant SQLite store: tenants, users, roles and org nodes.

Also owns the schema for the objective/key-result tables used by kr_store.
"""

import json as _json
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from db import wal_connect

logger = structlog.get_logger()

_DEFAULT_DB_PATH = Path(os.environ.get("SCORECARD_HOME", Path.home() / "scorecard")) / "scorecard.db"

# Default roles seeded into every new tenant.
DEFAULT_ROLES = {
    "admin": (
        "Administrador",
        {"canManageUsers": True, "canManageConfig": True, "canViewAll": True, "canEditAll": True},
    ),
    "leader": (
        "Líder",
        {"canManageUsers": False, "canManageConfig": False, "canViewAll": True, "canEditAll": True},
    ),
    "member": (
        "Membro",
        {"canManageUsers": False, "canManageConfig": False, "canViewAll": True, "canEditAll": False},
    ),
    "viewer": (
        "Visualizador",
        {"canManageUsers": False, "canManageConfig": False, "canViewAll": True, "canEditAll": False},
    ),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_conn(db_path: Path | None = None) -> sqlite3.Connection:
    return wal_connect(db_path or _DEFAULT_DB_PATH, row_factory=True)


def init_db(db_path: Path | None = None) -> None:
    """Create tables if they don't exist."""
    conn = _get_conn(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS tenants (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL
            );
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
                email TEXT,
                name TEXT,
                created_at TIMESTAMP NOT NULL
            );
            CREATE TABLE IF NOT EXISTS roles (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                name TEXT NOT NULL,
                permissions_json TEXT NOT NULL DEFAULT '{}',
                UNIQUE (tenant_id, key)
            );
            CREATE TABLE IF NOT EXISTS user_roles (
                user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                role_id TEXT NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
                PRIMARY KEY (user_id, role_id)
            );
            CREATE TABLE IF NOT EXISTS org_nodes (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
                parent_id TEXT REFERENCES org_nodes(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                leader_user_id TEXT REFERENCES users(id) ON DELETE SET NULL,
                created_at TIMESTAMP NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_org_tenant ON org_nodes(tenant_id);

            CREATE TABLE IF NOT EXISTS objectives (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
                org_node_id TEXT NOT NULL REFERENCES org_nodes(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                description TEXT,
                created_at TIMESTAMP NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_obj_tenant ON objectives(tenant_id, created_at);

            CREATE TABLE IF NOT EXISTS key_results (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
                objective_id TEXT NOT NULL REFERENCES objectives(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                description TEXT,
                type TEXT NOT NULL CHECK(type IN ('AUMENTO','REDUCAO','ENTREGAVEL','LIMIAR')),
                unit TEXT,
                due_date TEXT,
                target_value REAL,
                baseline_value REAL,
                threshold_value REAL,
                threshold_direction TEXT CHECK(threshold_direction IN ('MAXIMO','MINIMO')),
                current_value REAL,
                checklist_json TEXT,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_kr_objective ON key_results(tenant_id, objective_id, created_at);

            CREATE TABLE IF NOT EXISTS kr_update_history (
                id TEXT PRIMARY KEY,
                tenant_id TEXT NOT NULL,
                key_result_id TEXT NOT NULL REFERENCES key_results(id) ON DELETE CASCADE,
                updated_by_user_id TEXT REFERENCES users(id) ON DELETE SET NULL,
                event_type TEXT NOT NULL CHECK(event_type IN ('NUMERIC_UPDATE','CHECKLIST_UPDATE')),
                reference_month TEXT NOT NULL,
                previous_value REAL,
                new_value REAL,
                previous_progress REAL,
                new_progress REAL,
                previous_items_count INTEGER,
                new_items_count INTEGER,
                previous_done_count INTEGER,
                new_done_count INTEGER,
                notes TEXT,
                created_at TIMESTAMP NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_history_kr ON kr_update_history(key_result_id, created_at DESC);
        """)
        conn.commit()
    finally:
        conn.close()


# --- Tenants ---


def _seed_default_roles(conn: sqlite3.Connection, tenant_id: str) -> None:
    for key, (name, perms) in DEFAULT_ROLES.items():
        conn.execute(
            "INSERT OR IGNORE INTO roles (id, tenant_id, key, name, permissions_json) VALUES (?, ?, ?, ?, ?)",
            (uuid.uuid4().hex, tenant_id, key, name, _json.dumps(perms)),
        )


def get_or_create_tenant(
    tenant_id: str,
    name: str | None = None,
    db_path: Path | None = None,
) -> dict[str, Any]:
    """Return the tenant, creating it (with default roles) on first sight."""
    conn = _get_conn(db_path)
    try:
        row = conn.execute("SELECT * FROM tenants WHERE id = ?", (tenant_id,)).fetchone()
        if row:
            return dict(row)
        now = _now()
        conn.execute(
            "INSERT INTO tenants (id, name, created_at) VALUES (?, ?, ?)",
            (tenant_id, name or tenant_id, now),
        )
        _seed_default_roles(conn, tenant_id)
        conn.commit()
        logger.info("user_store.tenant_created", tenant_id=tenant_id)
        return {"id": tenant_id, "name": name or tenant_id, "created_at": now}
    finally:
        conn.close()


# --- Users ---


def get_or_create_user(
    user_id: str,
    tenant_id: str,
    email: str | None = None,
    name: str | None = None,
    db_path: Path | None = None,
) -> dict[str, Any]:
    """Upsert user on login. The tenant must already exist."""
    conn = _get_conn(db_path)
    try:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row:
            if email or name:
                conn.execute(
                    "UPDATE users SET email = COALESCE(?, email), name = COALESCE(?, name) WHERE id = ?",
                    (email, name, user_id),
                )
                conn.commit()
                row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return dict(row)

        now = _now()
        conn.execute(
            "INSERT INTO users (id, tenant_id, email, name, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, tenant_id, email, name, now),
        )
        conn.commit()
        return {"id": user_id, "tenant_id": tenant_id, "email": email, "name": name, "created_at": now}
    finally:
        conn.close()


def get_user(user_id: str, db_path: Path | None = None) -> dict | None:
    conn = _get_conn(db_path)
    try:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


# --- Roles ---


def assign_role(
    user_id: str,
    tenant_id: str,
    role_key: str,
    db_path: Path | None = None,
) -> bool:
    """Give a user one of the tenant's roles. False if the role doesn't exist."""
    conn = _get_conn(db_path)
    try:
        role = conn.execute(
            "SELECT id FROM roles WHERE tenant_id = ? AND key = ?",
            (tenant_id, role_key),
        ).fetchone()
        if not role:
            return False
        conn.execute(
            "INSERT OR IGNORE INTO user_roles (user_id, role_id) VALUES (?, ?)",
            (user_id, role["id"]),
        )
        conn.commit()
        logger.info("user_store.role_assigned", user_id=user_id, role=role_key)
        return True
    finally:
        conn.close()


def get_user_permissions(user_id: str, db_path: Path | None = None) -> dict[str, bool]:
    """Merge the permission flags of every role the user holds.

    A flag is granted if any of the roles grants it.
    """
    conn = _get_conn(db_path)
    try:
        rows = conn.execute(
            """
            SELECT r.permissions_json
            FROM user_roles ur
            JOIN roles r ON r.id = ur.role_id
            WHERE ur.user_id = ?
            """,
            (user_id,),
        ).fetchall()
    finally:
        conn.close()

    merged: dict[str, bool] = {}
    for row in rows:
        try:
            perms = _json.loads(row["permissions_json"])
        except ValueError:
            logger.warning("user_store.bad_permissions_json", user_id=user_id)
            continue
        for key, value in perms.items():
            merged[key] = merged.get(key, False) or bool(value)
    return merged


# --- Org nodes ---


def create_org_node(
    tenant_id: str,
    name: str,
    parent_id: str | None = None,
    leader_user_id: str | None = None,
    db_path: Path | None = None,
) -> dict[str, Any]:
    node = {
        "id": uuid.uuid4().hex,
        "tenant_id": tenant_id,
        "parent_id": parent_id,
        "name": name,
        "leader_user_id": leader_user_id,
        "created_at": _now(),
    }
    conn = _get_conn(db_path)
    try:
        conn.execute(
            "INSERT INTO org_nodes (id, tenant_id, parent_id, name, leader_user_id, created_at) "
            "VALUES (:id, :tenant_id, :parent_id, :name, :leader_user_id, :created_at)",
            node,
        )
        conn.commit()
        return node
    finally:
        conn.close()


def get_org_node(node_id: str, tenant_id: str, db_path: Path | None = None) -> dict | None:
    conn = _get_conn(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM org_nodes WHERE id = ? AND tenant_id = ?",
            (node_id, tenant_id),
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def list_org_nodes(tenant_id: str, db_path: Path | None = None) -> list[dict]:
    conn = _get_conn(db_path)
    try:
        rows = conn.execute(
            "SELECT * FROM org_nodes WHERE tenant_id = ? ORDER BY created_at ASC, rowid ASC",
            (tenant_id,),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def is_org_node_leader(
    user_id: str,
    tenant_id: str,
    org_node_id: str,
    db_path: Path | None = None,
) -> bool:
    conn = _get_conn(db_path)
    try:
        row = conn.execute(
            "SELECT 1 FROM org_nodes WHERE id = ? AND tenant_id = ? AND leader_user_id = ?",
            (org_node_id, tenant_id, user_id),
        ).fetchone()
        return row is not None
    finally:
        conn.close()
