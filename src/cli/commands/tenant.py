"""Tenant and role administration commands."""

import sys

import click
from rich.console import Console

from cli.utils import get_db_path

console = Console()


@click.group()
def tenant():
    """Manage tenants and role assignments."""
    pass


@tenant.command("create")
@click.argument("tenant_id")
@click.option("--name", help="Display name (defaults to the id)")
def tenant_create(tenant_id: str, name: str | None):
    """Create a tenant with the default roles."""
    from web.user_store import get_or_create_tenant, init_db

    path = get_db_path()
    init_db(path)
    record = get_or_create_tenant(tenant_id, name=name, db_path=path)
    console.print(f"[green]✓[/] Tenant [cyan]{record['id']}[/] ({record['name']})")


@tenant.command("assign-role")
@click.argument("user_id")
@click.argument("tenant_id")
@click.argument("role_key")
@click.option("--email", help="E-mail, if the user is new")
def tenant_assign_role(user_id: str, tenant_id: str, role_key: str, email: str | None):
    """Give USER_ID the ROLE_KEY role (admin, leader, member, viewer) in TENANT_ID."""
    from web.user_store import assign_role, get_or_create_tenant, get_or_create_user, init_db

    path = get_db_path()
    init_db(path)
    get_or_create_tenant(tenant_id, db_path=path)
    get_or_create_user(user_id, tenant_id, email=email, db_path=path)
    if not assign_role(user_id, tenant_id, role_key, db_path=path):
        console.print(f"[red]Unknown role:[/] {role_key}")
        sys.exit(1)
    console.print(f"[green]✓[/] {user_id} is now [cyan]{role_key}[/] in {tenant_id}")
