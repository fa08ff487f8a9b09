import typer
from typing import List, Optional
from rich.table import Table

from .config import resolve_tenant
from .departments import department_path
from .ledger import append_event, load_state, EMPLOYEES_FILE, ALLOCATIONS_FILE, DEPARTMENTS_FILE
from .utils import console, new_id

people_app = typer.Typer(help="Manage employees")

TENANT_HELP = "Tenant to operate on (defaults to the configured tenant)"
DEPARTMENT_HELP = "Department ID (repeat for several)"

def _email_taken(employees: dict, email: str, exclude: Optional[str] = None) -> bool:
    return any(e.get("email") == email and not e.get("is_deleted") and eid != exclude for eid, e in employees.items())

def _check_departments(tenant_id: str, department_ids: List[str]) -> List[str]:
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    unknown = [d for d in department_ids if d not in departments or departments[d].get("is_deleted")]
    if unknown:
        typer.secho(f"❌ Unknown department(s): {', '.join(unknown)}", fg="red", bold=True)
        raise typer.Exit(code=1)
    return list(dict.fromkeys(department_ids))

@people_app.command(name="add")
def add_employee(
    given_name: str = typer.Option(..., "--given-name", prompt="Given name"),
    surname: str = typer.Option(..., "--surname", prompt="Surname"),
    email: str = typer.Option("", "--email", prompt="Email", show_default=False),
    department: Optional[List[str]] = typer.Option(None, "--department", "-d", help=DEPARTMENT_HELP),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    given_name, surname = given_name.strip(), surname.strip()
    if not given_name or not surname:
        typer.secho("❌ Given name and surname are both required.", fg="red", bold=True)
        raise typer.Exit(code=1)
    if email and _email_taken(employees, email):
        typer.secho(f"❌ Error: {email} is already on the roster!", fg="red", bold=True)
        raise typer.Exit(code=1)
    department_ids = _check_departments(tenant_id, department or [])

    employee_id = new_id()
    append_event(tenant_id, "EMPLOYEE_ADDED", {
        "employee_id": employee_id, "given_name": given_name,
        "surname": surname, "email": email, "department_ids": department_ids,
    })
    typer.secho(f"✅ Added {given_name} {surname} ({employee_id}).", fg="green", bold=True)

@people_app.command(name="edit")
def edit_employee(
    employee_id: str,
    given_name: Optional[str] = typer.Option(None, "--given-name"),
    surname: Optional[str] = typer.Option(None, "--surname"),
    email: Optional[str] = typer.Option(None, "--email"),
    department: Optional[List[str]] = typer.Option(None, "--department", "-d", help=f"{DEPARTMENT_HELP}; replaces the current set"),
    clear_departments: bool = typer.Option(False, "--no-departments", help="Remove every department assignment"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    """Change an employee's name, email or departments. Omitted fields keep their value."""
    tenant_id = resolve_tenant(tenant)
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    if employee_id not in employees or employees[employee_id].get("is_deleted"):
        typer.secho("❌ Employee not found.", fg="red")
        raise typer.Exit(1)

    changes = {}
    for field, value in (("given_name", given_name), ("surname", surname)):
        if value is None: continue
        if not value.strip():
            typer.secho(f"❌ {field.replace('_', ' ').capitalize()} cannot be empty.", fg="red", bold=True)
            raise typer.Exit(code=1)
        changes[field] = value.strip()
    if email is not None:
        if email and _email_taken(employees, email, exclude=employee_id):
            typer.secho(f"❌ Error: {email} is already on the roster!", fg="red", bold=True)
            raise typer.Exit(code=1)
        changes["email"] = email
    if department:
        changes["department_ids"] = _check_departments(tenant_id, department)
    elif clear_departments:
        changes["department_ids"] = []

    if not changes:
        typer.secho("Nothing to change.", fg="yellow"); return
    append_event(tenant_id, "EMPLOYEE_EDITED", {"employee_id": employee_id, **changes})
    typer.secho("✅ Employee updated.", fg="green")

@people_app.command(name="list")
def list_employees(
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Search name or email"),
    department: Optional[str] = typer.Option(None, "--department", "-d", help="Only members of this department ID"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    departments = load_state(tenant_id, DEPARTMENTS_FILE)
    live = {k: v for k, v in employees.items() if not v.get("is_deleted")}
    if not live: return console.print("[yellow]No employees recorded yet.[/yellow]")

    table = Table(title=f"Employees ({tenant_id})", header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email", style="white")
    table.add_column("Departments", style="green")

    for eid, data in sorted(live.items(), key=lambda kv: (kv[1]["given_name"], kv[1]["surname"])):
        name = f"{data['given_name']} {data['surname']}"
        if search and search.lower() not in f"{name} {data.get('email', '')}".lower(): continue
        dept_ids = [d for d in data.get("department_ids", []) if not departments.get(d, {}).get("is_deleted", True)]
        if department and department not in dept_ids: continue
        paths = ", ".join(sorted(department_path(departments, d) for d in dept_ids))
        table.add_row(eid, name, data.get("email") or "-", paths or "-")
    console.print(table)

@people_app.command(name="delete")
def delete_employee(
    employee_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    tenant_id = resolve_tenant(tenant)
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    if employee_id not in employees or employees[employee_id].get("is_deleted"):
        typer.secho("❌ Employee not found.", fg="red")
        raise typer.Exit(1)

    data = employees[employee_id]
    active = [a for a in load_state(tenant_id, ALLOCATIONS_FILE).values()
              if a.get("employee_id") == employee_id and not a.get("is_deleted")]
    if active:
        typer.secho(f"⚠️ {len(active)} allocation(s) still reference this employee.", fg="yellow")

    if yes or typer.confirm(f"Are you sure you want to remove {data['given_name']} {data['surname']}?"):
        append_event(tenant_id, "EMPLOYEE_DELETED", {"employee_id": employee_id})
        typer.secho("✅ Removed successfully.", fg="green")
