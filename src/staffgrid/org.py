import typer
from typing import Optional
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .config import resolve_tenant
from .departments import build_tree, children_of, would_cycle
from .ledger import append_event, load_state, CLIENTS_FILE, DEPARTMENTS_FILE, EMPLOYEES_FILE, PROJECTS_FILE
from .utils import console, generate_project_code, new_id

client_app = typer.Typer(help="Manage the clients projects are run for")
department_app = typer.Typer(help="Manage the department tree")

TENANT_HELP = "Tenant to operate on (defaults to the configured tenant)"

def _live(state: dict) -> dict:
    return {k: v for k, v in state.items() if not v.get("is_deleted")}

def find_client(clients: dict, code: str) -> Optional[str]:
    """Live client id for a client code, case-insensitive."""
    return next((cid for cid, c in _live(clients).items() if c.get("client_code", "").upper() == code.upper()), None)


# --- CLIENTS ---
@client_app.command(name="add")
def add_client(
    name: str = typer.Option(..., "--name", prompt="Client name"),
    code: Optional[str] = typer.Option(None, "--code", help="Client code (auto-generated when omitted)"),
    country: str = typer.Option("", "--country", help="ISO 3166 alpha-2 country code", show_default=False),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    clients = _live(load_state(tenant_id, CLIENTS_FILE))
    name = name.strip()
    if not name:
        typer.secho("❌ Client name is required.", fg="red"); raise typer.Exit(1)
    if country and len(country.strip()) != 2:
        typer.secho("❌ Country must be a two-letter code such as GB or US.", fg="red"); raise typer.Exit(1)

    # Client codes share the project-code generator; the `code` key is what it checks
    code = (code or generate_project_code(name, {k: {"code": v.get("client_code", "")} for k, v in clients.items()})).upper()
    if find_client(clients, code):
        typer.secho(f"❌ Client code {code} is already in use.", fg="red"); raise typer.Exit(1)

    client_id = new_id()
    append_event(tenant_id, "CLIENT_ADDED", {
        "client_id": client_id, "name": name, "client_code": code,
        "country_code_iso_2": country.strip().upper(), "is_active": True,
    })
    typer.secho(f"✅ Client {code} - {name} recorded.", fg="green")

@client_app.command(name="list")
def list_clients(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Only clients whose name or code contains this"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    clients = _live(load_state(tenant_id, CLIENTS_FILE))
    projects = _live(load_state(tenant_id, PROJECTS_FILE))
    if search:
        needle = search.lower()
        clients = {k: v for k, v in clients.items() if needle in f"{v['name']} {v['client_code']}".lower()}
    if not clients: return console.print("[yellow]No clients found.[/yellow]")

    table = Table(title=f"Clients ({tenant_id})", header_style="bold magenta")
    table.add_column("Code", style="bold yellow")
    table.add_column("Name", style="white")
    table.add_column("Country")
    table.add_column("Projects", style="cyan")
    for cid, data in sorted(clients.items(), key=lambda kv: kv[1]["name"].lower()):
        codes = sorted(p["code"] for p in projects.values() if p.get("client_id") == cid)
        table.add_row(data["client_code"], escape(data["name"]), data.get("country_code_iso_2") or "-",
                      ", ".join(codes) if codes else "[dim]-[/dim]")
    console.print(table)

@client_app.command(name="edit")
def edit_client(
    code: str,
    name: Optional[str] = typer.Option(None, "--name"),
    country: Optional[str] = typer.Option(None, "--country"),
    active: Optional[bool] = typer.Option(None, "--active/--inactive"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    client_id = find_client(load_state(tenant_id, CLIENTS_FILE), code)
    if not client_id:
        typer.secho("❌ Client not found.", fg="red"); raise typer.Exit(1)

    changes = {}
    if name is not None and name.strip(): changes["name"] = name.strip()
    if country is not None: changes["country_code_iso_2"] = country.strip().upper()
    if active is not None: changes["is_active"] = active
    if not changes:
        typer.secho("Nothing to change.", fg="yellow"); return
    append_event(tenant_id, "CLIENT_EDITED", {"client_id": client_id, **changes})
    typer.secho("✅ Client updated.", fg="green")


# --- DEPARTMENTS ---
def _check_department(departments: dict, dept_id: Optional[str], label: str = "Department"):
    if dept_id and dept_id not in _live(departments):
        typer.secho(f"❌ {label} {dept_id} not found.", fg="red")
        raise typer.Exit(1)

@department_app.command(name="add")
def add_department(
    name: str = typer.Option(..., "--name", prompt="Department name"),
    parent: Optional[str] = typer.Option(None, "--parent", help="Parent department ID (omit for a top-level department)"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    if not name.strip():
        typer.secho("❌ Department name is required.", fg="red"); raise typer.Exit(1)
    _check_department(departments, parent, "Parent department")

    dept_id = new_id()
    append_event(tenant_id, "DEPARTMENT_ADDED", {
        "department_id": dept_id, "name": name.strip(),
        "parent_department_id": parent or None, "is_active": True,
    })
    typer.secho(f"✅ Department {name.strip()} recorded ({dept_id}).", fg="green")

@department_app.command(name="list")
def list_departments(tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP)):
    """Show departments as an indented tree with their headcount."""
    tenant_id = resolve_tenant(tenant)
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    employees = _live(load_state(tenant_id, EMPLOYEES_FILE))
    roots = build_tree(departments)
    if not roots: return console.print("[yellow]No departments recorded yet.[/yellow]")

    def _label(node) -> str:
        heads = sum(1 for e in employees.values() if node.department_id in e.get("department_ids", []))
        status = "[green]Active[/green]" if node.is_active else "[red]Inactive[/red]"
        return f"[bold]{escape(node.name)}[/bold] [dim]{node.department_id}[/dim] ({status}, {heads} people)"

    def _grow(branch: Tree, node):
        for child in node.children:
            _grow(branch.add(_label(child)), child)

    tree = Tree(f"[bold magenta]Departments ({tenant_id})[/bold magenta]")
    for root in roots:
        _grow(tree.add(_label(root)), root)
    console.print(tree)

@department_app.command(name="edit")
def edit_department(
    dept_id: str,
    name: Optional[str] = typer.Option(None, "--name"),
    parent: Optional[str] = typer.Option(None, "--parent", help="New parent department ID"),
    top_level: bool = typer.Option(False, "--top-level", help="Detach from the parent"),
    active: Optional[bool] = typer.Option(None, "--active/--inactive"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    _check_department(departments, dept_id)
    _check_department(departments, parent, "Parent department")
    if parent and would_cycle(departments, dept_id, parent):
        typer.secho("❌ A department cannot sit under itself or one of its own sub-departments.", fg="red")
        raise typer.Exit(1)

    changes = {}
    if name is not None and name.strip(): changes["name"] = name.strip()
    if parent: changes["parent_department_id"] = parent
    elif top_level: changes["parent_department_id"] = None
    if active is not None: changes["is_active"] = active
    if not changes:
        typer.secho("Nothing to change.", fg="yellow"); return
    append_event(tenant_id, "DEPARTMENT_EDITED", {"department_id": dept_id, **changes})
    typer.secho("✅ Department updated.", fg="green")

@department_app.command(name="delete")
def delete_department(
    dept_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    _check_department(departments, dept_id)
    if children_of(departments, dept_id):
        typer.secho("❌ Move or delete its sub-departments first.", fg="red")
        raise typer.Exit(1)

    members = [e for e in _live(load_state(tenant_id, EMPLOYEES_FILE)).values() if dept_id in e.get("department_ids", [])]
    if members:
        typer.secho(f"⚠️ {len(members)} employee(s) are still assigned to this department.", fg="yellow")
    if yes or typer.confirm(f"Remove department {departments[dept_id]['name']}?"):
        append_event(tenant_id, "DEPARTMENT_DELETED", {"department_id": dept_id})
        typer.secho("✅ Department removed.", fg="green")
