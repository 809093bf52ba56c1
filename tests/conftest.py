"""Shared test fixtures for Scorecard."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def db_path(tmp_path):
    """Fresh, initialised scorecard.db for each test."""
    from web.user_store import init_db

    path = tmp_path / "scorecard.db"
    init_db(path)
    return path


@pytest.fixture
def tenant_setup(db_path):
    """Tenant with an admin, a plain member, an org node led by the member
    and one objective on that node."""
    from web.kr_store import create_objective
    from web.user_store import assign_role, create_org_node, get_or_create_tenant, get_or_create_user

    get_or_create_tenant("t1", name="Acme", db_path=db_path)
    get_or_create_user("admin", "t1", email="admin@acme.test", name="Admin", db_path=db_path)
    get_or_create_user("member", "t1", email="member@acme.test", name="Member", db_path=db_path)
    assign_role("admin", "t1", "admin", db_path=db_path)
    assign_role("member", "t1", "member", db_path=db_path)
    node = create_org_node("t1", "Sales", leader_user_id="member", db_path=db_path)
    objective = create_objective("t1", node["id"], "Grow revenue", db_path=db_path)
    return {"db_path": db_path, "node": node, "objective": objective}
