"""Key Result routes: CRUD, numeric check-ins and update history (per-tenant)."""

import re
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status

from keyresults.sanitize import sanitize_by_type
from keyresults.validation import KRUpdate, validate_key_result
from shared_types import KRType
from web import kr_store
from web.auth import get_current_user
from web.deps import get_history_limits
from web.models import KRValueUpdate
from web.permissions import can_manage_kr

logger = structlog.get_logger()

router = APIRouter(prefix="/api/kr", tags=["key-results"])

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def _get_kr_or_404(kr_id: str, tenant_id: str) -> dict:
    kr = kr_store.get_key_result(kr_id, tenant_id)
    if not kr:
        raise HTTPException(status_code=404, detail="Key Result not found")
    return kr


def _require_manage(user: dict, org_node_id: str) -> None:
    if not can_manage_kr(user["id"], user["tenant_id"], org_node_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


@router.get("")
async def list_key_results(
    objective_id: Optional[str] = None,
    user: dict = Depends(get_current_user),
):
    return {"key_results": kr_store.list_key_results(user["tenant_id"], objective_id=objective_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_key_result(
    body: dict[str, Any] = Body(...),
    user: dict = Depends(get_current_user),
):
    try:
        payload = validate_key_result(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    objective = kr_store.get_objective(payload.objective_id, user["tenant_id"])
    if not objective:
        raise HTTPException(status_code=404, detail="Objective not found")
    _require_manage(user, objective["org_node_id"])

    key_result = kr_store.create_key_result(user["tenant_id"], payload.model_dump(mode="json"))
    return {"key_result": key_result}


@router.get("/{kr_id}")
async def get_key_result(
    kr_id: str,
    user: dict = Depends(get_current_user),
):
    return {"key_result": _get_kr_or_404(kr_id, user["tenant_id"])}


@router.patch("/{kr_id}")
async def update_key_result(
    kr_id: str,
    body: KRUpdate,
    user: dict = Depends(get_current_user),
):
    existing = _get_kr_or_404(kr_id, user["tenant_id"])
    _require_manage(user, existing["objective"]["org_node_id"])

    changes = body.model_dump(mode="json", exclude_unset=True)
    for field in ("title", "type"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    if changes.get("type") and changes["type"] != existing["type"]:
        # A type switch must leave a complete, valid record of the new type.
        merged = {field: existing.get(field) for field in kr_store.KR_FIELDS}
        merged.update(changes, objective_id=existing["objective_id"])
        try:
            validate_key_result(sanitize_by_type(merged))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.info("kr.type_changed", kr_id=kr_id, old=existing["type"], new=changes["type"])

    key_result = kr_store.update_key_result(kr_id, user["tenant_id"], changes, updated_by=user["id"])
    if not key_result:
        raise HTTPException(status_code=404, detail="Key Result not found")
    return {"key_result": key_result}


@router.delete("/{kr_id}")
async def delete_key_result(
    kr_id: str,
    user: dict = Depends(get_current_user),
):
    existing = _get_kr_or_404(kr_id, user["tenant_id"])
    _require_manage(user, existing["objective"]["org_node_id"])
    kr_store.delete_key_result(kr_id, user["tenant_id"])
    return {"success": True}


@router.patch("/{kr_id}/update")
async def update_value(
    kr_id: str,
    body: KRValueUpdate,
    user: dict = Depends(get_current_user),
):
    """Record a periodic check-in of a numeric KR's current value."""
    if body.current_value is None or body.current_value < 0:
        raise HTTPException(status_code=400, detail="current_value must be a positive number")

    month = body.reference_month if body.reference_month and _MONTH_RE.match(body.reference_month) else None

    existing = _get_kr_or_404(kr_id, user["tenant_id"])
    _require_manage(user, existing["objective"]["org_node_id"])

    if existing["type"] == KRType.ENTREGAVEL:
        raise HTTPException(
            status_code=400,
            detail="ENTREGAVEL key results are updated via their checklist",
        )

    _, recent = get_history_limits()
    result = kr_store.record_value_update(
        kr_id,
        user["tenant_id"],
        user["id"],
        body.current_value,
        reference_month=month,
        notes=body.notes,
        recent=recent,
    )
    if not result:
        raise HTTPException(status_code=404, detail="Key Result not found")
    key_result, history = result
    return {"key_result": key_result, "history": history}


@router.get("/{kr_id}/history")
async def get_history(
    kr_id: str,
    user: dict = Depends(get_current_user),
):
    _get_kr_or_404(kr_id, user["tenant_id"])
    limit, _ = get_history_limits()
    return {"history": kr_store.list_history(kr_id, user["tenant_id"], limit=limit)}
