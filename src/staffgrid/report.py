import typer
from datetime import datetime
from typing import List, Optional
from rich.markup import escape
from rich.table import Table

from .buckets import Weekday
from .config import load_config, resolve_tenant, week_starts_on
from .ledger import fetch_allocations
from .levels import Level
from .logger import set_level
from .records import normalize
from .utils import console, level_style, parse_date
from .views import BucketView, Layout, ViewEntry, ViewMode, build_view

report_app = typer.Typer(help="Calendar and heatmap occupancy views")

TENANT_HELP = "Tenant to report on (defaults to the configured tenant)"

def _chip(entry: ViewEntry, with_value: bool = True) -> str:
    text = f"{escape(entry.display_label)} {entry.value_label}%" if with_value else escape(entry.display_label)
    return f"[{level_style(entry.level)}]{text}[/]"

def _calendar_cell(view: BucketView) -> str:
    lines = [f"[bold]{view.bucket.start.day}[/bold]"]
    if view.layout is Layout.LIST:
        lines += [_chip(e) for e in view.entries]
    elif view.layout is Layout.GRID:
        chips = [_chip(e) for e in view.entries]
        lines += ["  ".join(chips[i:i + 2]) for i in range(0, len(chips), 2)]
    else:
        lines.append(" ".join(_chip(e, with_value=False) for e in view.entries))
        if view.overflow: lines.append(f"[dim]+{view.overflow} more[/dim]")
    return "\n".join(lines)

def print_calendar(views: List[BucketView], first_weekday: Weekday, title: str):
    table = Table(title=title, header_style="bold magenta", show_lines=True)
    for i in range(7):
        table.add_column(Weekday((first_weekday + i) % 7).name[:3].title(), justify="left", vertical="top")

    lead = (views[0].bucket.start.weekday() - first_weekday) % 7
    cells = [""] * lead + [_calendar_cell(v) for v in views]
    cells += [""] * (-len(cells) % 7)
    for i in range(0, len(cells), 7):
        table.add_row(*cells[i:i + 7])
    console.print(table)

def print_heatmap(views: List[BucketView], title: str, row_header: str):
    table = Table(title=title, header_style="bold magenta")
    table.add_column(row_header, style="cyan", no_wrap=True)
    for v in views: table.add_column(v.bucket.label, justify="center")

    rows = len(views[0].entries) if views else 0
    for r in range(rows):
        label = escape(views[0].entries[r].display_label)
        cells = []
        for v in views:
            e = v.entries[r]
            cells.append(f"[{level_style(e.level)}]{e.value_label}[/]" if e.level is not Level.EMPTY else "[dim].[/]")
        table.add_row(label, *cells)
    console.print(table)

def print_legend(mode: ViewMode):
    bands = {
        ViewMode.PROJECT_HEATMAP: ["≤ 1.0", "1.1-2.0", "2.1-3.0", "> 3.0"],
    }.get(mode, ["≤ 50%", "51-80%", "81-100%", "> 100%"])
    levels = [Level.LOW, Level.MEDIUM, Level.HIGH, Level.OVER]
    console.print("   ".join(f"[{level_style(l)}]■[/] {b}" for l, b in zip(levels, bands)))

def show_view(mode: ViewMode, tenant: Optional[str], on: Optional[str], weeks: Optional[int], offset: int):
    cfg = load_config()
    set_level(cfg["log_level"])
    tenant_id = resolve_tenant(tenant)
    reference = parse_date(on) or datetime.now().date()
    first_weekday = week_starts_on(cfg)

    rows, _ = fetch_allocations(tenant_id)
    records = normalize(rows)
    views = build_view(mode, records, reference, weeks=weeks or 1, offset=offset, week_starts_on=first_weekday)

    if mode is ViewMode.CALENDAR:
        month = views[0].bucket.start
        print_calendar(views, first_weekday, f"Allocations {month:%B %Y} ({tenant_id})")
    elif not records:
        return console.print("[yellow]No allocations to display.[/yellow]")
    elif mode is ViewMode.HEATMAP:
        print_heatmap(views, f"Employee Workload ({tenant_id})", "Employee")
    else:
        print_heatmap(views, f"Project Staffing, employees per week ({tenant_id})", "Project")
    print_legend(mode)

@report_app.command(name="calendar")
def report_calendar(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Any date in the month to show (YYYY-MM-DD)"),
    offset: int = typer.Option(0, "--offset", "-o", help="Months to page forward (negative pages back)"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    show_view(ViewMode.CALENDAR, tenant, on, None, offset)

@report_app.command(name="heatmap")
def report_heatmap(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date inside the first week shown"),
    weeks: Optional[int] = typer.Option(None, "--weeks", "-w", min=1, help="Number of weeks"),
    offset: int = typer.Option(0, "--offset", "-o", help="Weeks to page forward (negative pages back)"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    show_view(ViewMode.HEATMAP, tenant, on, weeks or load_config()["heatmap_weeks"], offset)

@report_app.command(name="project-heatmap")
def report_project_heatmap(
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Date inside the first week shown"),
    weeks: Optional[int] = typer.Option(None, "--weeks", "-w", min=1, help="Number of weeks"),
    offset: int = typer.Option(0, "--offset", "-o", help="Weeks to page forward (negative pages back)"),
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help=TENANT_HELP),
):
    show_view(ViewMode.PROJECT_HEATMAP, tenant, on, weeks or load_config()["project_heatmap_weeks"], offset)
