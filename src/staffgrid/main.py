import typer

from .config import run_setup_wizard
from .org import client_app, department_app
from .people import people_app
from .project import project_app
from .report import report_app

app = typer.Typer(help="Staffgrid: allocation calendar and workload heatmaps", add_completion=False)

app.add_typer(people_app, name="people")
app.add_typer(project_app, name="project")
app.add_typer(client_app, name="client")
app.add_typer(department_app, name="department")
app.add_typer(report_app, name="report")

@app.command(name="setup")
def setup():
    """Configure tenant, paging and week preferences."""
    run_setup_wizard()

if __name__ == "__main__":
    app()
