import json
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from .logger import get_logger

log = get_logger(__name__)

# --- FILE SETUP ---
# One directory per tenant; nothing is created until the first write
DATA_DIR = Path(os.getenv("STAFFGRID_HOME", Path.home() / ".staffgrid"))

JOURNAL_FILE = "journal.jsonl"
EMPLOYEES_FILE = "employees.json"
PROJECTS_FILE = "projects.json"
ALLOCATIONS_FILE = "allocations.json"
CLIENTS_FILE = "clients.json"
DEPARTMENTS_FILE = "departments.json"

# Event prefix -> (state file, id field). Every entity supports _ADDED, _EDITED and _DELETED.
ENTITIES = {
    "EMPLOYEE": (EMPLOYEES_FILE, "employee_id"),
    "PROJECT": (PROJECTS_FILE, "project_id"),
    "ALLOCATION": (ALLOCATIONS_FILE, "id"),
    "CLIENT": (CLIENTS_FILE, "client_id"),
    "DEPARTMENT": (DEPARTMENTS_FILE, "department_id"),
}

_TENANT_ID = re.compile(r"^[A-Za-z0-9_-]+$")

def tenant_dir(tenant_id: str) -> Path:
    if not isinstance(tenant_id, str) or not _TENANT_ID.match(tenant_id):
        raise ValueError(f"Invalid tenant id {tenant_id!r}: use letters, digits, '-' or '_'")
    return DATA_DIR / "tenants" / tenant_id


# --- THE WRITER (Append-Only) ---
def append_event(tenant_id: str, event_type: str, payload: dict):
    """
    Appends an event to the tenant's journal and immediately rebuilds its state.
    """
    folder = tenant_dir(tenant_id)
    folder.mkdir(parents=True, exist_ok=True)
    event = {
        "event_id": str(uuid.uuid4()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "payload": payload
    }
    with (folder / JOURNAL_FILE).open("a") as f:
        f.write(json.dumps(event) + "\n")
    log.debug("tenant %s: %s %s", tenant_id, event_type, payload)
    rebuild_state(tenant_id)


# --- THE REDUCER (Rebuilds current reality) ---
def rebuild_state(tenant_id: str):
    """
    Replays the tenant's journal top to bottom and writes the resulting
    employees, projects, allocations, clients and departments to
    fast-read JSON files.
    """
    folder = tenant_dir(tenant_id)
    state = {filename: {} for filename, _ in ENTITIES.values()}
    journal = folder / JOURNAL_FILE

    if journal.exists():
        with journal.open("r") as f:
            for line in f:
                if not line.strip(): continue
                event = json.loads(line)
                e_type, data = event["event_type"], event["payload"]
                entity, _, action = e_type.rpartition("_")
                if entity not in ENTITIES or action not in ("ADDED", "EDITED", "DELETED"):
                    log.warning("tenant %s: ignoring unknown event type %s", tenant_id, e_type)
                    continue

                filename, id_field = ENTITIES[entity]
                records, key = state[filename], data[id_field]
                if action == "ADDED":
                    records[key] = {**data, "is_deleted": False}
                elif key not in records:
                    log.warning("tenant %s: %s for unknown id %s", tenant_id, e_type, key)
                elif action == "EDITED":
                    records[key].update(data)
                else:
                    records[key]["is_deleted"] = True

    folder.mkdir(parents=True, exist_ok=True)
    for filename, records in state.items():
        _save_state(folder / filename, records)


# --- HELPER FUNCTIONS ---
def _save_state(filepath: Path, data: dict):
    with filepath.open("w") as f:
        json.dump(data, f, indent=2)

def load_state(tenant_id: str, filename: str) -> dict:
    try:
        with (tenant_dir(tenant_id) / filename).open("r") as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}

def fetch_allocations(tenant_id: str, page: Optional[int] = None, per_page: Optional[int] = None) -> Tuple[List[dict], int]:
    """
    Live allocations joined with their employee and project, newest start
    first. `page` is 1-based; without paging every row is returned.
    Returns the rows and the total row count.
    """
    employees = load_state(tenant_id, EMPLOYEES_FILE)
    projects = load_state(tenant_id, PROJECTS_FILE)
    allocations = load_state(tenant_id, ALLOCATIONS_FILE)

    rows = []
    for alloc in allocations.values():
        if alloc.get("is_deleted"): continue
        emp = employees.get(alloc.get("employee_id"), {})
        proj = projects.get(alloc.get("project_id"), {})
        joined_emp = {"given_name": emp.get("given_name", ""), "surname": emp.get("surname", "")}
        joined_proj = {"code": proj.get("code", ""), "name": proj.get("name", "")}
        rows.append({
            **alloc,
            "Employees": joined_emp,
            "Projects": joined_proj,
            "employee_name": f"{joined_emp['given_name']} {joined_emp['surname']}".strip(),
            "project_name": f"{joined_proj['code']} - {joined_proj['name']}" if proj else "",
        })

    rows.sort(key=lambda r: (str(r.get("start_date", "")), str(r.get("id", ""))), reverse=True)
    count = len(rows)
    if page is not None and per_page is not None:
        if page < 1 or per_page < 1:
            raise ValueError(f"page and per_page must be positive, got {page}, {per_page}")
        start_row = (page - 1) * per_page
        rows = rows[start_row:start_row + per_page]
    return rows, count
