"""Objectives, Key Results and KR update history in SQLite.

Computed metrics are never persisted: every KR leaving this module goes
through serialize_key_result(), which runs the progress engine on the stored
values.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from keyresults.metrics import average_progress, compute_kr_metrics, parse_checklist
from keyresults.sanitize import sanitize_by_type
from observability import metrics
from shared_types import KRType, KRUpdateEventType
from web.user_store import _get_conn

logger = structlog.get_logger()

# Columns a client may write, in table order.
KR_FIELDS = (
    "title",
    "description",
    "type",
    "unit",
    "due_date",
    "target_value",
    "baseline_value",
    "threshold_value",
    "threshold_direction",
    "current_value",
    "checklist_json",
)

_KR_SELECT = """
    SELECT kr.*, o.title AS objective_title, o.org_node_id AS objective_org_node_id
    FROM key_results kr
    JOIN objectives o ON o.id = kr.objective_id
"""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def current_month() -> str:
    return _now().strftime("%Y-%m")


def _dump_checklist(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value)


def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    if record.get("checklist_json") is not None:
        try:
            record["checklist_json"] = json.loads(record["checklist_json"])
        except ValueError:
            logger.warning("kr_store.bad_checklist_json", kr_id=record.get("id"))
            record["checklist_json"] = None
    if "objective_title" in record:
        record["objective"] = {
            "id": record["objective_id"],
            "title": record.pop("objective_title"),
            "org_node_id": record.pop("objective_org_node_id"),
        }
    return record


def serialize_key_result(record: dict[str, Any]) -> dict[str, Any]:
    """Attach the engine output as ``computed`` alongside the raw fields."""
    return {**record, "computed": compute_kr_metrics(record).to_dict()}


def _checklist_counts(checklist: Any) -> tuple[int, int]:
    items = parse_checklist(checklist)
    return len(items), sum(1 for i in items if i.done)


# --- Objectives ---


def create_objective(
    tenant_id: str,
    org_node_id: str,
    title: str,
    description: str | None = None,
    db_path: Path | None = None,
) -> dict[str, Any]:
    objective = {
        "id": uuid.uuid4().hex,
        "tenant_id": tenant_id,
        "org_node_id": org_node_id,
        "title": title,
        "description": description,
        "created_at": _now().isoformat(),
    }
    conn = _get_conn(db_path)
    try:
        conn.execute(
            "INSERT INTO objectives (id, tenant_id, org_node_id, title, description, created_at) "
            "VALUES (:id, :tenant_id, :org_node_id, :title, :description, :created_at)",
            objective,
        )
        conn.commit()
        logger.info("kr_store.objective_created", objective_id=objective["id"], tenant_id=tenant_id)
        return objective
    finally:
        conn.close()


def get_objective(objective_id: str, tenant_id: str, db_path: Path | None = None) -> dict | None:
    conn = _get_conn(db_path)
    try:
        row = conn.execute(
            "SELECT * FROM objectives WHERE id = ? AND tenant_id = ?",
            (objective_id, tenant_id),
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def list_objectives(tenant_id: str, db_path: Path | None = None) -> list[dict]:
    """List objectives with their KR count and mean engine progress."""
    conn = _get_conn(db_path)
    try:
        objectives = [
            dict(r)
            for r in conn.execute(
                "SELECT * FROM objectives WHERE tenant_id = ? ORDER BY created_at ASC, rowid ASC",
                (tenant_id,),
            ).fetchall()
        ]
        kr_rows = conn.execute(
            "SELECT * FROM key_results WHERE tenant_id = ?",
            (tenant_id,),
        ).fetchall()
    finally:
        conn.close()

    by_objective: dict[str, list] = {}
    for row in kr_rows:
        record = _row_to_record(row)
        by_objective.setdefault(record["objective_id"], []).append(compute_kr_metrics(record))

    for objective in objectives:
        results = by_objective.get(objective["id"], [])
        objective["kr_count"] = len(results)
        objective["progress"] = average_progress(results)
    return objectives


def delete_objective(objective_id: str, tenant_id: str, db_path: Path | None = None) -> bool:
    """Delete an objective and (by cascade) its KRs."""
    conn = _get_conn(db_path)
    try:
        cur = conn.execute(
            "DELETE FROM objectives WHERE id = ? AND tenant_id = ?",
            (objective_id, tenant_id),
        )
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def kr_count_map(tenant_id: str, db_path: Path | None = None) -> dict[str, bool]:
    """Map objective id -> whether it has any KR."""
    conn = _get_conn(db_path)
    try:
        rows = conn.execute(
            "SELECT objective_id, COUNT(id) AS n FROM key_results WHERE tenant_id = ? GROUP BY objective_id",
            (tenant_id,),
        ).fetchall()
        return {r["objective_id"]: r["n"] > 0 for r in rows}
    finally:
        conn.close()


# --- Key results ---


def _insert_key_result(conn: sqlite3.Connection, tenant_id: str, data: dict[str, Any]) -> dict[str, Any]:
    clean = sanitize_by_type(data)
    now = _now().isoformat()
    values = {field: clean.get(field) for field in KR_FIELDS}
    values["checklist_json"] = _dump_checklist(values["checklist_json"])
    values.update(
        id=uuid.uuid4().hex,
        tenant_id=tenant_id,
        objective_id=clean["objective_id"],
        created_at=now,
        updated_at=now,
    )
    columns = ", ".join(values)
    placeholders = ", ".join(f":{c}" for c in values)
    conn.execute(f"INSERT INTO key_results ({columns}) VALUES ({placeholders})", values)
    return values


def create_key_result(
    tenant_id: str,
    data: dict[str, Any],
    db_path: Path | None = None,
) -> dict[str, Any]:
    """Insert a KR from an already-validated payload; returns it serialized."""
    conn = _get_conn(db_path)
    try:
        values = _insert_key_result(conn, tenant_id, data)
        conn.commit()
    finally:
        conn.close()

    logger.info("kr_store.created", kr_id=values["id"], kr_type=values["type"], tenant_id=tenant_id)
    metrics.counter("kr_store.created", label=values["type"])
    return get_key_result(values["id"], tenant_id, db_path)


def create_key_results(
    tenant_id: str,
    items: list[dict[str, Any]],
    db_path: Path | None = None,
) -> list[str]:
    """Insert a batch of validated KRs in one transaction; returns their ids.

    Either every KR is stored or, if any insert fails, none is.
    """
    conn = _get_conn(db_path)
    try:
        with conn:
            inserted = [_insert_key_result(conn, tenant_id, data) for data in items]
    finally:
        conn.close()

    for values in inserted:
        metrics.counter("kr_store.created", label=values["type"])
    logger.info("kr_store.batch_created", count=len(inserted), tenant_id=tenant_id)
    return [values["id"] for values in inserted]


def _fetch_record(conn: sqlite3.Connection, kr_id: str, tenant_id: str) -> dict | None:
    row = conn.execute(
        _KR_SELECT + " WHERE kr.id = ? AND kr.tenant_id = ?",
        (kr_id, tenant_id),
    ).fetchone()
    return _row_to_record(row) if row else None


def get_key_result(kr_id: str, tenant_id: str, db_path: Path | None = None) -> dict | None:
    conn = _get_conn(db_path)
    try:
        record = _fetch_record(conn, kr_id, tenant_id)
    finally:
        conn.close()
    return serialize_key_result(record) if record else None


def list_key_results(
    tenant_id: str,
    objective_id: str | None = None,
    db_path: Path | None = None,
) -> list[dict]:
    query = _KR_SELECT + " WHERE kr.tenant_id = ?"
    params: list[Any] = [tenant_id]
    if objective_id:
        query += " AND kr.objective_id = ?"
        params.append(objective_id)
    query += " ORDER BY kr.created_at ASC, kr.rowid ASC"

    conn = _get_conn(db_path)
    try:
        rows = conn.execute(query, params).fetchall()
    finally:
        conn.close()
    return [serialize_key_result(_row_to_record(r)) for r in rows]


def _insert_history(conn: sqlite3.Connection, entry: dict[str, Any]) -> dict[str, Any]:
    entry = {
        "id": uuid.uuid4().hex,
        "previous_value": None,
        "new_value": None,
        "previous_progress": None,
        "new_progress": None,
        "previous_items_count": None,
        "new_items_count": None,
        "previous_done_count": None,
        "new_done_count": None,
        "notes": None,
        "created_at": _now().isoformat(),
        **entry,
    }
    columns = ", ".join(entry)
    placeholders = ", ".join(f":{c}" for c in entry)
    conn.execute(f"INSERT INTO kr_update_history ({columns}) VALUES ({placeholders})", entry)
    return entry


def update_key_result(
    kr_id: str,
    tenant_id: str,
    changes: dict[str, Any],
    updated_by: str | None = None,
    db_path: Path | None = None,
) -> dict | None:
    """Apply a partial update, re-sanitizing the merged record by its type.

    A changed checklist on a deliverable KR is recorded as a
    CHECKLIST_UPDATE history event in the same transaction.
    """
    conn = _get_conn(db_path)
    try:
        with conn:
            existing = _fetch_record(conn, kr_id, tenant_id)
            if not existing:
                return None

            merged = {field: existing.get(field) for field in KR_FIELDS}
            merged.update({k: v for k, v in changes.items() if k in KR_FIELDS})
            merged = sanitize_by_type(merged)

            values = dict(merged, checklist_json=_dump_checklist(merged["checklist_json"]))
            values["updated_at"] = _now().isoformat()
            assignments = ", ".join(f"{c} = :{c}" for c in values)
            conn.execute(
                f"UPDATE key_results SET {assignments} WHERE id = :kr_id AND tenant_id = :tenant_id",
                {**values, "kr_id": kr_id, "tenant_id": tenant_id},
            )

            if (
                merged["type"] == KRType.ENTREGAVEL
                and "checklist_json" in changes
                and merged["checklist_json"] != existing.get("checklist_json")
            ):
                prev_items, prev_done = _checklist_counts(existing.get("checklist_json"))
                new_items, new_done = _checklist_counts(merged["checklist_json"])
                _insert_history(conn, {
                    "tenant_id": tenant_id,
                    "key_result_id": kr_id,
                    "updated_by_user_id": updated_by,
                    "event_type": KRUpdateEventType.CHECKLIST_UPDATE.value,
                    "reference_month": current_month(),
                    "previous_progress": compute_kr_metrics(existing).progress,
                    "new_progress": compute_kr_metrics(merged).progress,
                    "previous_items_count": prev_items,
                    "new_items_count": new_items,
                    "previous_done_count": prev_done,
                    "new_done_count": new_done,
                })
    finally:
        conn.close()

    logger.info("kr_store.updated", kr_id=kr_id, fields=sorted(changes))
    return get_key_result(kr_id, tenant_id, db_path)


def delete_key_result(kr_id: str, tenant_id: str, db_path: Path | None = None) -> bool:
    conn = _get_conn(db_path)
    try:
        cur = conn.execute(
            "DELETE FROM key_results WHERE id = ? AND tenant_id = ?",
            (kr_id, tenant_id),
        )
        conn.commit()
    finally:
        conn.close()
    if cur.rowcount:
        logger.info("kr_store.deleted", kr_id=kr_id, tenant_id=tenant_id)
    return cur.rowcount > 0


# --- Update history ---


def record_value_update(
    kr_id: str,
    tenant_id: str,
    user_id: str,
    current_value: float,
    reference_month: str | None = None,
    notes: str | None = None,
    recent: int = 3,
    db_path: Path | None = None,
) -> tuple[dict, dict] | None:
    """Set a numeric KR's current value and upsert its monthly history row.

    One NUMERIC_UPDATE row is kept per (KR, reference month): a second update
    in the same month rewrites the row's new value/progress in place.

    Returns:
        (serialized KR with ``update_histories``, history row), or None if the
        KR doesn't exist in this tenant.
    """
    month = reference_month or current_month()
    conn = _get_conn(db_path)
    try:
        with conn:
            existing = _fetch_record(conn, kr_id, tenant_id)
            if not existing:
                return None

            previous_value = existing.get("current_value") or 0
            previous_progress = compute_kr_metrics(existing).progress
            new_progress = compute_kr_metrics({**existing, "current_value": current_value}).progress

            conn.execute(
                "UPDATE key_results SET current_value = ?, updated_at = ? WHERE id = ?",
                (current_value, _now().isoformat(), kr_id),
            )

            monthly = conn.execute(
                """
                SELECT * FROM kr_update_history
                WHERE tenant_id = ? AND key_result_id = ? AND reference_month = ? AND event_type = ?
                ORDER BY created_at DESC LIMIT 1
                """,
                (tenant_id, kr_id, month, KRUpdateEventType.NUMERIC_UPDATE.value),
            ).fetchone()

            if monthly:
                conn.execute(
                    """
                    UPDATE kr_update_history
                    SET new_value = ?, new_progress = ?, updated_by_user_id = ?, notes = COALESCE(?, notes)
                    WHERE id = ?
                    """,
                    (current_value, new_progress, user_id, notes, monthly["id"]),
                )
                history = dict(
                    conn.execute("SELECT * FROM kr_update_history WHERE id = ?", (monthly["id"],)).fetchone()
                )
            else:
                history = _insert_history(conn, {
                    "tenant_id": tenant_id,
                    "key_result_id": kr_id,
                    "updated_by_user_id": user_id,
                    "event_type": KRUpdateEventType.NUMERIC_UPDATE.value,
                    "reference_month": month,
                    "previous_value": previous_value,
                    "new_value": current_value,
                    "previous_progress": previous_progress,
                    "new_progress": new_progress,
                    "notes": notes,
                })

            record = _fetch_record(conn, kr_id, tenant_id)
            recent_rows = conn.execute(
                "SELECT * FROM kr_update_history WHERE key_result_id = ? ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (kr_id, recent),
            ).fetchall()
    finally:
        conn.close()

    logger.info("kr_store.value_updated", kr_id=kr_id, month=month, value=current_value)
    metrics.counter("kr_store.value_updates", label=existing["type"])
    key_result = serialize_key_result(record)
    key_result["update_histories"] = [dict(r) for r in recent_rows]
    return key_result, history


def list_history(
    kr_id: str,
    tenant_id: str,
    limit: int = 24,
    db_path: Path | None = None,
) -> list[dict]:
    """History rows for a KR, newest first, with the updater's identity."""
    conn = _get_conn(db_path)
    try:
        rows = conn.execute(
            """
            SELECT h.*, u.name AS updated_by_name, u.email AS updated_by_email
            FROM kr_update_history h
            LEFT JOIN users u ON u.id = h.updated_by_user_id
            WHERE h.key_result_id = ? AND h.tenant_id = ?
            ORDER BY h.created_at DESC, h.rowid DESC
            LIMIT ?
            """,
            (kr_id, tenant_id, limit),
        ).fetchall()
    finally:
        conn.close()

    history = []
    for row in rows:
        entry = dict(row)
        name, email = entry.pop("updated_by_name"), entry.pop("updated_by_email")
        entry["updated_by"] = (
            {"id": entry["updated_by_user_id"], "name": name, "email": email}
            if entry["updated_by_user_id"]
            else None
        )
        history.append(entry)
    return history

