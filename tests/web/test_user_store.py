"""Tests for user_store: tenants, users, roles, org nodes."""

from web.user_store import (
    DEFAULT_ROLES,
    assign_role,
    create_org_node,
    get_or_create_tenant,
    get_or_create_user,
    get_org_node,
    get_user_permissions,
    is_org_node_leader,
    list_org_nodes,
)


def test_tenant_bootstrap_seeds_roles(db_path):
    get_or_create_tenant("t1", name="Acme", db_path=db_path)
    get_or_create_user("u1", "t1", db_path=db_path)
    for key in DEFAULT_ROLES:
        assert assign_role("u1", "t1", key, db_path=db_path) is True


def test_tenant_is_idempotent(db_path):
    first = get_or_create_tenant("t1", name="Acme", db_path=db_path)
    second = get_or_create_tenant("t1", name="Other", db_path=db_path)
    assert second["name"] == "Acme"
    assert first["id"] == second["id"]


def test_user_upsert(db_path):
    get_or_create_tenant("t1", db_path=db_path)
    get_or_create_user("u1", "t1", email="a@b.com", name="Alice", db_path=db_path)
    user = get_or_create_user("u1", "t1", email="new@b.com", db_path=db_path)
    assert user["email"] == "new@b.com"
    assert user["name"] == "Alice"
    assert user["tenant_id"] == "t1"


def test_unknown_role(db_path):
    get_or_create_tenant("t1", db_path=db_path)
    get_or_create_user("u1", "t1", db_path=db_path)
    assert assign_role("u1", "t1", "superuser", db_path=db_path) is False


def test_permissions_merge(db_path):
    get_or_create_tenant("t1", db_path=db_path)
    get_or_create_user("u1", "t1", db_path=db_path)
    assert get_user_permissions("u1", db_path=db_path) == {}

    assign_role("u1", "t1", "viewer", db_path=db_path)
    assert get_user_permissions("u1", db_path=db_path)["canEditAll"] is False

    assign_role("u1", "t1", "admin", db_path=db_path)
    perms = get_user_permissions("u1", db_path=db_path)
    assert perms["canManageConfig"] is True
    # viewer's False flags do not revoke what admin grants
    assert perms["canEditAll"] is True


def test_org_nodes_are_tenant_scoped(db_path):
    get_or_create_tenant("t1", db_path=db_path)
    get_or_create_tenant("t2", db_path=db_path)
    get_or_create_user("lead", "t1", db_path=db_path)
    node = create_org_node("t1", "Company", leader_user_id="lead", db_path=db_path)
    child = create_org_node("t1", "Sales", parent_id=node["id"], db_path=db_path)

    assert [n["name"] for n in list_org_nodes("t1", db_path=db_path)] == ["Company", "Sales"]
    assert list_org_nodes("t2", db_path=db_path) == []
    assert get_org_node(child["id"], "t2", db_path=db_path) is None
    assert get_org_node(child["id"], "t1", db_path=db_path)["parent_id"] == node["id"]

    assert is_org_node_leader("lead", "t1", node["id"], db_path=db_path) is True
    assert is_org_node_leader("lead", "t1", child["id"], db_path=db_path) is False
    assert is_org_node_leader("lead", "t2", node["id"], db_path=db_path) is False
