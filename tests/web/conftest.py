"""Shared fixtures for web API tests."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from web.kr_store import create_objective
from web.user_store import assign_role, create_org_node, get_or_create_tenant, get_or_create_user


@pytest.fixture
def jwt_secret():
    return "test-nextauth-secret"


def _make_auth_token(jwt_secret, user_id, tenant_id="t1", email="u@test.com", name="U"):
    return jwt.encode(
        {"sub": user_id, "tenant_id": tenant_id, "email": email, "name": name},
        jwt_secret,
        algorithm="HS256",
    )


@pytest.fixture
def admin_headers(jwt_secret):
    token = _make_auth_token(jwt_secret, "admin", email="admin@acme.test", name="Admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def leader_headers(jwt_secret):
    """The member who leads the Sales node."""
    token = _make_auth_token(jwt_secret, "member", email="member@acme.test", name="Member")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def viewer_headers(jwt_secret, tenant_setup):
    get_or_create_user("viewer", "t1", email="viewer@acme.test", name="Viewer", db_path=tenant_setup["db_path"])
    assign_role("viewer", "t1", "viewer", db_path=tenant_setup["db_path"])
    token = _make_auth_token(jwt_secret, "viewer", email="viewer@acme.test", name="Viewer")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_tenant_headers(jwt_secret, tenant_setup):
    """Admin of a second tenant, for isolation tests."""
    db = tenant_setup["db_path"]
    get_or_create_tenant("t2", name="Globex", db_path=db)
    get_or_create_user("boss", "t2", email="boss@globex.test", name="Boss", db_path=db)
    assign_role("boss", "t2", "admin", db_path=db)
    token = _make_auth_token(jwt_secret, "boss", tenant_id="t2", email="boss@globex.test", name="Boss")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_node(tenant_setup):
    """A node the member does not lead."""
    return create_org_node("t1", "Marketing", db_path=tenant_setup["db_path"])


@pytest.fixture
def other_objective(tenant_setup, other_node):
    return create_objective("t1", other_node["id"], "Brand awareness", db_path=tenant_setup["db_path"])


@pytest.fixture
def client(jwt_secret, tenant_setup):
    """Test client backed by the tenant_setup database."""
    patches = [
        patch.dict(os.environ, {"NEXTAUTH_SECRET": jwt_secret}),
        # user_store uses test DB; real get_or_create_user so FK rows exist
        patch("web.user_store._DEFAULT_DB_PATH", tenant_setup["db_path"]),
    ]

    for p in patches:
        p.start()

    from web.app import app

    yield TestClient(app)

    for p in reversed(patches):
        p.stop()
