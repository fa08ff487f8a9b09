import math
from typing import Optional
import typer
from rich.table import Table

from .config import load_config, resolve_tenant
from .ledger import (append_event, fetch_allocations, load_state,
                     ALLOCATIONS_FILE, CLIENTS_FILE, EMPLOYEES_FILE, PROJECTS_FILE)
from .org import find_client
from .utils import console, generate_project_code, new_id, parse_date, prompt_for_date, prompt_for_int

project_app = typer.Typer(help="Manage projects and staffing allocations")

TENANT_HELP = "Tenant to operate on (defaults to the configured tenant)"

def _live(state: dict) -> dict:
    return {k: v for k, v in state.items() if not v.get("is_deleted")}

def _check_range(start: str, end: str):
    if parse_date(end) < parse_date(start):
        typer.secho(f"❌ End date {end} is before start date {start}.", fg="red")
        raise typer.Exit(1)

def _resolve_client(tenant_id: str, client_code: Optional[str]) -> Optional[str]:
    if not client_code: return None
    client_id = find_client(load_state(tenant_id, CLIENTS_FILE), client_code)
    if not client_id:
        typer.secho(f"❌ Client {client_code.upper()} not found. Add it with 'staffgrid client add'.", fg="red")
        raise typer.Exit(1)
    return client_id

def _find_project(projects: dict, code: str) -> Optional[str]:
    return next((pid for pid, p in projects.items() if p["code"].upper() == code.upper()), None)

@project_app.command(name="add")
def add_project(
    name: str = typer.Option(..., "--name", prompt="Project name"),
    code: Optional[str] = typer.Option(None, "--code", help="Short code (auto-generated when omitted)"),
    client: Optional[str] = typer.Option(None, "--client", "-c", help="Client code the project is run for"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    projects = load_state(tenant_id, PROJECTS_FILE)
    code = (code or generate_project_code(name, _live(projects))).upper()
    if _find_project(_live(projects), code):
        typer.secho(f"❌ Project code {code} is already in use.", fg="red")
        raise typer.Exit(1)
    client_id = _resolve_client(tenant_id, client)

    project_id = new_id()
    append_event(tenant_id, "PROJECT_ADDED", {"project_id": project_id, "code": code, "name": name.strip(), "client_id": client_id})
    typer.secho(f"✅ Project {code} - {name} recorded.", fg="green")

@project_app.command(name="edit")
def edit_project(
    code: str,
    name: Optional[str] = typer.Option(None, "--name"),
    new_code: Optional[str] = typer.Option(None, "--new-code", help="Rename the project code"),
    client: Optional[str] = typer.Option(None, "--client", "-c", help="Client code the project is run for"),
    no_client: bool = typer.Option(False, "--no-client", help="Detach the project from its client"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    """Rename a project, change its code or move it to another client."""
    tenant_id = resolve_tenant(tenant)
    projects = _live(load_state(tenant_id, PROJECTS_FILE))
    project_id = _find_project(projects, code)
    if not project_id:
        typer.secho("❌ Project not found.", fg="red"); raise typer.Exit(1)

    changes = {}
    if name is not None and name.strip(): changes["name"] = name.strip()
    if new_code:
        clash = _find_project(projects, new_code)
        if clash and clash != project_id:
            typer.secho(f"❌ Project code {new_code.upper()} is already in use.", fg="red"); raise typer.Exit(1)
        changes["code"] = new_code.upper()
    if client:
        changes["client_id"] = _resolve_client(tenant_id, client)
    elif no_client:
        changes["client_id"] = None

    if not changes:
        typer.secho("Nothing to change.", fg="yellow"); return
    append_event(tenant_id, "PROJECT_EDITED", {"project_id": project_id, **changes})
    typer.secho("✅ Project updated.", fg="green")

@project_app.command(name="list")
def list_projects(tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP)):
    tenant_id = resolve_tenant(tenant)
    projects = _live(load_state(tenant_id, PROJECTS_FILE))
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    clients = load_state(tenant_id, CLIENTS_FILE)
    allocations = _live(load_state(tenant_id, ALLOCATIONS_FILE))
    if not projects: return console.print("[yellow]The project list is empty.[/yellow]")

    table = Table(title=f"Projects ({tenant_id})", header_style="bold magenta")
    table.add_column("Code", style="bold yellow")
    table.add_column("Name", style="white")
    table.add_column("Client", style="green")
    table.add_column("Team", style="cyan")

    for pid, data in sorted(projects.items(), key=lambda kv: kv[1]["code"]):
        team = sorted({
            f"{employees.get(a['employee_id'], {}).get('given_name', '?')} {employees.get(a['employee_id'], {}).get('surname', '')}".strip()
            for a in allocations.values() if a.get("project_id") == pid
        })
        client = clients.get(data.get("client_id") or "", {}).get("name", "-")
        table.add_row(data["code"], data["name"], client, ", ".join(team) if team else "[dim]-[/dim]")
    console.print(table)

@project_app.command(name="delete")
def delete_project(
    code: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    projects = _live(load_state(tenant_id, PROJECTS_FILE))
    project_id = _find_project(projects, code)
    if not project_id:
        typer.secho("❌ Project not found.", fg="red")
        raise typer.Exit(1)
    if yes or typer.confirm(f"Remove project {code.upper()}?"):
        append_event(tenant_id, "PROJECT_DELETED", {"project_id": project_id})
        typer.secho("✅ Project removed.", fg="green")

@project_app.command(name="allocate")
def allocate_employee(
    employee_id: Optional[str] = typer.Option(None, "--employee", "-e", help="Employee ID"),
    project_code: Optional[str] = typer.Option(None, "--project", "-p", help="Project code"),
    percentage: int = typer.Option(..., "--percentage", prompt="Allocation % (1-100)", min=1, max=100),
    start: Optional[str] = typer.Option(None, "--start", help="Start date YYYY-MM-DD"),
    end: Optional[str] = typer.Option(None, "--end", help="End date YYYY-MM-DD"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    employees = _live(load_state(tenant_id, EMPLOYEES_FILE))
    projects = _live(load_state(tenant_id, PROJECTS_FILE))

    if not project_code:
        ptable = Table(title="Available Projects", header_style="bold magenta")
        ptable.add_column("Code", style="bold yellow"); ptable.add_column("Name")
        for d in projects.values(): ptable.add_row(d["code"], d["name"])
        console.print(ptable)
        project_code = typer.prompt("Project code")
    code_to_pid = {p["code"].upper(): pid for pid, p in projects.items()}
    if project_code.upper() not in code_to_pid:
        typer.secho("❌ Project code not found.", fg="red"); raise typer.Exit(1)

    if not employee_id:
        etable = Table(title="Employees", header_style="bold magenta")
        etable.add_column("ID", style="dim"); etable.add_column("Name")
        for eid, d in employees.items(): etable.add_row(eid, f"{d['given_name']} {d['surname']}")
        console.print(etable)
        employee_id = typer.prompt("Employee ID")
    if employee_id not in employees:
        typer.secho("❌ Employee not found.", fg="red"); raise typer.Exit(1)

    start = (parse_date(start) or parse_date(prompt_for_date("Start Date"))).isoformat()
    end = (parse_date(end) or parse_date(prompt_for_date("End Date"))).isoformat()
    _check_range(start, end)

    allocation_id = new_id()
    append_event(tenant_id, "ALLOCATION_ADDED", {
        "id": allocation_id, "employee_id": employee_id,
        "project_id": code_to_pid[project_code.upper()],
        "start_date": start, "end_date": end, "allocation_percentage": percentage,
    })
    emp = employees[employee_id]
    typer.secho(f"✅ Allocated {emp['given_name']} {emp['surname']} at {percentage}% ({allocation_id}).", fg="green", bold=True)

@project_app.command(name="edit-allocation")
def edit_allocation(
    allocation_id: str,
    percentage: Optional[int] = typer.Option(None, "--percentage", min=1, max=100),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    allocations = _live(load_state(tenant_id, ALLOCATIONS_FILE))
    if allocation_id not in allocations:
        typer.secho("❌ Allocation not found.", fg="red"); raise typer.Exit(1)

    cur = allocations[allocation_id]
    if percentage is None and start is None and end is None:
        percentage = prompt_for_int("Allocation %", default=cur["allocation_percentage"], low=1, high=100)
        start = prompt_for_date("Start Date", default=cur["start_date"])
        end = prompt_for_date("End Date", default=cur["end_date"])

    new_start = parse_date(start).isoformat() if start else cur["start_date"]
    new_end = parse_date(end).isoformat() if end else cur["end_date"]
    _check_range(new_start, new_end)

    append_event(tenant_id, "ALLOCATION_EDITED", {
        "id": allocation_id, "start_date": new_start, "end_date": new_end,
        "allocation_percentage": percentage if percentage is not None else cur["allocation_percentage"],
    })
    typer.secho("✅ Allocation updated.", fg="green")

@project_app.command(name="unallocate")
def unallocate(
    allocation_id: str,
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    if allocation_id in _live(load_state(tenant_id, ALLOCATIONS_FILE)):
        append_event(tenant_id, "ALLOCATION_DELETED", {"id": allocation_id})
        typer.secho("✅ Allocation removed.", fg="green")
    else:
        typer.secho("❌ ID not found.", fg="red")
        raise typer.Exit(1)

@project_app.command(name="allocations")
def list_allocations(
    page: int = typer.Option(1, "--page", min=1),
    per_page: Optional[int] = typer.Option(None, "--per-page", min=1),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    per_page = per_page or load_config()["items_per_page"]
    rows, count = fetch_allocations(tenant_id, page, per_page)
    if not count: return console.print("[yellow]No allocations recorded yet.[/yellow]")

    pages = max(1, math.ceil(count / per_page))
    table = Table(title=f"Allocations ({tenant_id}) - page {page}/{pages}", header_style="bold magenta")
    table.add_column("ID", style="dim"); table.add_column("Employee", style="cyan")
    table.add_column("Project", style="yellow"); table.add_column("Start"); table.add_column("End")
    table.add_column("%", justify="right")
    for r in rows:
        table.add_row(r["id"], r["employee_name"], r["project_name"], r["start_date"], r["end_date"], str(r["allocation_percentage"]))
    console.print(table)
    console.print(f"[dim]{count} allocation(s) total[/dim]")
