"""Strategic objective routes (per-tenant)."""

from fastapi import APIRouter, Depends, HTTPException, status

from web import kr_store
from web.auth import get_current_user
from web.models import ObjectiveCreate
from web.permissions import can_manage_kr
from web.user_store import get_org_node

router = APIRouter(prefix="/api/objectives", tags=["objectives"])


@router.get("")
async def list_objectives(user: dict = Depends(get_current_user)):
    return {"objectives": kr_store.list_objectives(user["tenant_id"])}


@router.get("/kr-count")
async def kr_count(user: dict = Depends(get_current_user)):
    """Which objectives already have at least one KR."""
    return {"kr_status_map": kr_store.kr_count_map(user["tenant_id"])}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_objective(
    body: ObjectiveCreate,
    user: dict = Depends(get_current_user),
):
    if not get_org_node(body.org_node_id, user["tenant_id"]):
        raise HTTPException(status_code=404, detail="Org node not found")
    if not can_manage_kr(user["id"], user["tenant_id"], body.org_node_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    objective = kr_store.create_objective(
        user["tenant_id"],
        body.org_node_id,
        body.title,
        description=body.description,
    )
    return {"objective": objective}


@router.delete("/{objective_id}")
async def delete_objective(
    objective_id: str,
    user: dict = Depends(get_current_user),
):
    objective = kr_store.get_objective(objective_id, user["tenant_id"])
    if not objective:
        raise HTTPException(status_code=404, detail="Objective not found")
    if not can_manage_kr(user["id"], user["tenant_id"], objective["org_node_id"]):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    kr_store.delete_objective(objective_id, user["tenant_id"])
    return {"success": True}
