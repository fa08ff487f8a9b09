from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

from .logger import get_logger

log = get_logger(__name__)


class MalformedAllocation(ValueError):
    """A raw allocation row that cannot become an AllocationRecord."""


@dataclass(frozen=True)
class AllocationRecord:
    id: str
    subject_id: str
    subject_name: str
    project_id: str
    project_name: str
    start_date: date
    end_date: date
    percentage: float
    project_code: Optional[str] = None

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(f"allocation {self.id}: start_date {self.start_date} is after end_date {self.end_date}")
        if not 0 < self.percentage <= 100:
            raise ValueError(f"allocation {self.id}: percentage {self.percentage} outside (0, 100]")
        if self.project_code is None:
            object.__setattr__(self, "project_code", self.project_name)

    @property
    def sort_key(self):
        return (self.subject_name, self.project_name, self.id)


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime): return value.date()
    if isinstance(value, date): return value
    if not isinstance(value, str) or not value.strip():
        raise MalformedAllocation(f"{field} is missing or not a string")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # Timestamps keep their own calendar date, no UTC shifting
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise MalformedAllocation(f"{field} {value!r} is not an ISO date") from None


def _parse_percentage(value: Any) -> float:
    if isinstance(value, bool):
        raise MalformedAllocation("allocation_percentage must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise MalformedAllocation(f"allocation_percentage {value!r} is not numeric")


def _joined(raw: Mapping, key: str) -> Mapping:
    nested = raw.get(key)
    return nested if isinstance(nested, Mapping) else {}


def _subject_name(raw: Mapping) -> str:
    name = raw.get("employee_name")
    if not name:
        emp = _joined(raw, "Employees")
        parts = [str(emp[k]).strip() for k in ("given_name", "surname") if emp.get(k)]
        name = " ".join(parts)
    if not name:
        raise MalformedAllocation("no employee name or Employees(given_name, surname) join")
    return str(name)


def _project_name(raw: Mapping) -> str:
    name = raw.get("project_name")
    if not name:
        proj = _joined(raw, "Projects")
        if proj.get("code") and proj.get("name"):
            name = f"{proj['code']} - {proj['name']}"
        else:
            name = proj.get("name") or proj.get("code")
    if not name:
        raise MalformedAllocation("no project name or Projects(code, name) join")
    return str(name)


def parse_allocation(raw: Mapping) -> AllocationRecord:
    if not isinstance(raw, Mapping):
        raise MalformedAllocation(f"expected a mapping, got {type(raw).__name__}")
    if raw.get("id") in (None, ""):
        raise MalformedAllocation("missing id")

    subject_name = _subject_name(raw)
    project_name = _project_name(raw)
    start = _parse_date(raw.get("start_date"), "start_date")
    end = _parse_date(raw.get("end_date"), "end_date")
    pct = _parse_percentage(raw.get("allocation_percentage"))
    code = _joined(raw, "Projects").get("code")

    try:
        return AllocationRecord(
            id=str(raw["id"]),
            subject_id=str(raw.get("employee_id") or subject_name),
            subject_name=subject_name,
            project_id=str(raw.get("project_id") or project_name),
            project_name=project_name,
            start_date=start, end_date=end, percentage=pct,
            project_code=str(code) if code else None,
        )
    except ValueError as exc:
        raise MalformedAllocation(str(exc)) from exc


def normalize(raw_rows: Iterable[Mapping]) -> List[AllocationRecord]:
    """
    Converts loosely-typed allocation rows into AllocationRecords.
    Rows that fail validation are skipped with a warning so one bad row
    never blanks a whole report.
    """
    records = []
    for raw in raw_rows:
        try:
            records.append(parse_allocation(raw))
        except MalformedAllocation as exc:
            row_id = raw.get("id", "?") if isinstance(raw, Mapping) else "?"
            log.warning("Skipping allocation %s: %s", row_id, exc)
    return records
