"""Org structure routes (per-tenant)."""

from fastapi import APIRouter, Depends, HTTPException, status

from web.auth import get_current_user
from web.models import OrgNodeCreate
from web.permissions import can_manage_config
from web.user_store import create_org_node, get_org_node, get_user, list_org_nodes

router = APIRouter(prefix="/api/org", tags=["org"])


@router.get("")
async def list_nodes(user: dict = Depends(get_current_user)):
    return {"nodes": list_org_nodes(user["tenant_id"])}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_node(
    body: OrgNodeCreate,
    user: dict = Depends(get_current_user),
):
    if not can_manage_config(user["id"]):
        raise HTTPException(status_code=403, detail="Insufficient permissions")
    if body.parent_id and not get_org_node(body.parent_id, user["tenant_id"]):
        raise HTTPException(status_code=404, detail="Parent node not found")
    if body.leader_user_id:
        leader = get_user(body.leader_user_id)
        if not leader or leader["tenant_id"] != user["tenant_id"]:
            raise HTTPException(status_code=400, detail="Unknown leader_user_id")

    node = create_org_node(
        user["tenant_id"],
        body.name,
        parent_id=body.parent_id,
        leader_user_id=body.leader_user_id,
    )
    return {"node": node}
