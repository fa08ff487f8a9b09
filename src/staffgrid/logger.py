import logging
import os

from rich.console import Console
from rich.logging import RichHandler

# Diagnostics go to stderr so they never interleave with report tables
_handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
_handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))

ROOT_LOGGER = "staffgrid"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
FALLBACK_LEVEL = "WARNING"

def _resolve_level(default: str = FALLBACK_LEVEL) -> str:
    """Environment first, then the given default; unknown names fall back to WARNING."""
    for candidate in (os.getenv("STAFFGRID_LOG_LEVEL"), default):
        if candidate and str(candidate).strip().upper() in LOG_LEVELS:
            return str(candidate).strip().upper()
    return FALLBACK_LEVEL

def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under the staffgrid hierarchy, wiring the handler once."""
    root = logging.getLogger(ROOT_LOGGER)
    if _handler not in root.handlers:
        root.addHandler(_handler)
        root.setLevel(_resolve_level())
        root.propagate = True
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

def set_level(level: str):
    """Applies a configured level unless the environment already pins one."""
    logging.getLogger(ROOT_LOGGER).setLevel(_resolve_level(level))
