import json
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console

from . import ledger
from .buckets import Weekday
from .logger import LOG_LEVELS, FALLBACK_LEVEL, get_logger
from .utils import prompt_for_choice, prompt_for_int

log = get_logger(__name__)

# Configs live in the same data dir as the tenant journals
CONFIG_NAME = "config.json"

DEFAULT_CONFIG = {
    "default_tenant": "default",
    "heatmap_weeks": 12,
    "project_heatmap_weeks": 24,
    "week_starts_on": "sunday",
    "items_per_page": 10,
    "log_level": "WARNING",
}

def config_file() -> Path:
    return ledger.DATA_DIR / CONFIG_NAME

def load_config() -> dict:
    path = config_file()
    if not path.exists():
        return DEFAULT_CONFIG.copy()
    try:
        with path.open("r") as f:
            return {**DEFAULT_CONFIG, **json.load(f)}
    except json.JSONDecodeError:
        return DEFAULT_CONFIG.copy()

def save_config(config_data: dict):
    ledger.DATA_DIR.mkdir(parents=True, exist_ok=True)
    with config_file().open("w") as f:
        json.dump(config_data, f, indent=2)

def week_starts_on(config: dict) -> Weekday:
    value = config.get("week_starts_on", DEFAULT_CONFIG["week_starts_on"])
    try:
        return Weekday.parse(value)
    except (ValueError, TypeError):
        log.warning("Unknown week_starts_on %r in %s; using sunday", value, config_file())
        return Weekday.SUNDAY

def run_setup_wizard():
    console = Console()
    console.print("\n[bold cyan]🛠️  Welcome to Staffgrid Setup![/bold cyan]")
    console.print("Let's configure your workspace preferences. You can change these anytime with 'staffgrid setup'.\n")

    config = load_config()

    config["default_tenant"] = typer.prompt("Default tenant", default=config["default_tenant"])
    config["heatmap_weeks"] = prompt_for_int("Weeks shown in the employee heatmap", config["heatmap_weeks"], 1, 104)
    config["project_heatmap_weeks"] = prompt_for_int("Weeks shown in the project heatmap", config["project_heatmap_weeks"], 1, 104)
    config["items_per_page"] = prompt_for_int("Allocations per page in list views", config["items_per_page"], 1, 500)

    console.print("\n[bold]Week starts on:[/bold]")
    console.print("1: Sunday")
    console.print("2: Monday")
    current_choice = "2" if config["week_starts_on"] == "monday" else "1"
    week_choice = typer.prompt("Choose the first day of the week", default=current_choice, type=str)
    config["week_starts_on"] = "monday" if week_choice == "2" else "sunday"

    current_level = str(config["log_level"]).upper()
    if current_level not in LOG_LEVELS: current_level = FALLBACK_LEVEL
    config["log_level"] = prompt_for_choice("Log level", LOG_LEVELS, default=current_level)

    save_config(config)
    console.print("\n[bold green]✅ Configuration saved successfully![/bold green]\n")

def resolve_tenant(tenant: Optional[str]) -> str:
    """Explicit --tenant wins; otherwise the configured default tenant."""
    tenant_id = tenant or load_config()["default_tenant"]
    try:
        ledger.tenant_dir(tenant_id)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--tenant") from None
    return tenant_id
