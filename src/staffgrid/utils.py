import re
import uuid
from typing import Dict, Any, Optional
from datetime import date, datetime
import typer
from rich.console import Console

from .levels import Level

# Initialize a single console to be imported across all apps
console = Console()

LEVEL_STYLES = {
    Level.EMPTY: "dim",
    Level.LOW: "green",
    Level.MEDIUM: "yellow",
    Level.HIGH: "dark_orange",
    Level.OVER: "bold red",
}

def level_style(level: Level) -> str:
    return LEVEL_STYLES[level]

def new_id() -> str:
    return uuid.uuid4().hex[:8]

def generate_project_code(name: str, existing_projects: Dict[str, Any]) -> str:
    existing_codes = {p.get("code", "").upper() for p in existing_projects.values()}
    words = re.findall(r"[A-Za-z0-9]+", name)
    if not words:
        base_code = "PROJ"
    elif len(words) == 1:
        base_code = words[0][:4].upper()
    else:
        base_code = "".join(w[0] for w in words[:4]).upper()

    code = base_code
    counter = 1
    while code.upper() in existing_codes:
        counter += 1
        code = f"{base_code}{counter}"
    return code

def parse_date(value: Optional[str]) -> Optional[date]:
    if not value: return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"'{value}' is not a YYYY-MM-DD date") from None

def prompt_for_date(prompt_text: str, default: str = "") -> str:
    prompt_str = f"{prompt_text} (YYYY-MM-DD)"
    while True:
        date_str = typer.prompt(prompt_str, default=default, show_default=bool(default)).strip()
        try:
            return datetime.strptime(date_str, "%Y-%m-%d").date().isoformat()
        except ValueError:
            typer.secho("⚠️ Invalid format. Please use YYYY-MM-DD (e.g., 2025-12-31).", fg="yellow")

def prompt_for_int(prompt_text: str, default: Optional[int] = None, low: int = 1, high: Optional[int] = None) -> int:
    """Re-prompts until the answer is a whole number within [low, high]."""
    bounds = f"{low}-{high}" if high is not None else f">= {low}"
    while True:
        value = typer.prompt(f"{prompt_text} ({bounds})", default=default, type=int)
        if value >= low and (high is None or value <= high):
            return value
        typer.secho(f"⚠️ Please enter a number between {bounds}.", fg="yellow")

def prompt_for_choice(prompt_text: str, choices, default: str) -> str:
    """Re-prompts until the answer (case-insensitive) is one of `choices`; returns it upper-cased."""
    allowed = [c.upper() for c in choices]
    while True:
        value = typer.prompt(f"{prompt_text} [{'/'.join(allowed)}]", default=default).strip().upper()
        if value in allowed:
            return value
        typer.secho(f"⚠️ '{value}' is not one of {', '.join(allowed)}.", fg="yellow")
