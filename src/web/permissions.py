"""Write-permission checks for strategy records."""

from pathlib import Path

from web.user_store import get_user_permissions, is_org_node_leader


def can_manage_config(user_id: str, db_path: Path | None = None) -> bool:
    return bool(get_user_permissions(user_id, db_path).get("canManageConfig"))


def can_manage_kr(
    user_id: str,
    tenant_id: str,
    org_node_id: str,
    db_path: Path | None = None,
) -> bool:
    """Admins and global editors may manage any KR; otherwise only the leader
    of the objective's org node may."""
    perms = get_user_permissions(user_id, db_path)
    if perms.get("canManageConfig") or perms.get("canEditAll"):
        return True
    return is_org_node_leader(user_id, tenant_id, org_node_id, db_path)
