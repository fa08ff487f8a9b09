from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set

from .logger import get_logger

log = get_logger(__name__)


@dataclass
class DepartmentNode:
    department_id: str
    name: str
    is_active: bool = True
    children: List["DepartmentNode"] = field(default_factory=list)


def _live(departments: Mapping[str, dict]) -> Dict[str, dict]:
    return {k: v for k, v in departments.items() if not v.get("is_deleted")}

def _sort_key(item):
    dept_id, data = item
    return (data.get("name", ""), dept_id)

def children_of(departments: Mapping[str, dict], parent_id: Optional[str]) -> List[str]:
    """Live child ids of `parent_id` ordered by name; None lists the roots."""
    live = _live(departments)
    if parent_id is None:
        kids = {k: v for k, v in live.items() if not v.get("parent_department_id")}
    else:
        kids = {k: v for k, v in live.items() if v.get("parent_department_id") == parent_id}
    return [k for k, _ in sorted(kids.items(), key=_sort_key)]

def descendants(departments: Mapping[str, dict], dept_id: str) -> Set[str]:
    """Every live department below `dept_id`; stops on cycles."""
    found: Set[str] = set()
    stack = [dept_id]
    while stack:
        for child in children_of(departments, stack.pop()):
            if child not in found and child != dept_id:
                found.add(child)
                stack.append(child)
    return found

def would_cycle(departments: Mapping[str, dict], dept_id: str, new_parent_id: Optional[str]) -> bool:
    if not new_parent_id:
        return False
    return new_parent_id == dept_id or new_parent_id in descendants(departments, dept_id)

def build_tree(departments: Mapping[str, dict]) -> List[DepartmentNode]:
    """
    Nests live departments under their parents, siblings sorted by name.

    A department whose parent is missing or deleted is shown as a root.
    Departments caught in a parent cycle (only possible through a hand-edited
    journal) are also lifted to the top level so nothing is hidden.
    """
    live = _live(departments)
    placed: Set[str] = set()

    def _node(dept_id: str) -> DepartmentNode:
        placed.add(dept_id)
        data = live[dept_id]
        node = DepartmentNode(dept_id, data.get("name", ""), bool(data.get("is_active", True)))
        for child in children_of(live, dept_id):
            if child not in placed:
                node.children.append(_node(child))
        return node

    roots = []
    for dept_id, data in sorted(live.items(), key=_sort_key):
        parent = data.get("parent_department_id")
        if not parent or parent not in live:
            if parent:
                log.warning("Department %s points at missing parent %s; showing it at the top", dept_id, parent)
            roots.append(_node(dept_id))

    for dept_id, _ in sorted(live.items(), key=_sort_key):
        if dept_id not in placed:
            log.warning("Department %s is part of a parent cycle; showing it at the top", dept_id)
            roots.append(_node(dept_id))
    return roots

def department_path(departments: Mapping[str, dict], dept_id: str) -> str:
    """'Engineering / Backend' style path from the top of the tree down."""
    names, seen = [], set()
    current = dept_id
    while current and current in departments and current not in seen:
        seen.add(current)
        names.append(departments[current].get("name", current))
        current = departments[current].get("parent_department_id")
    return " / ".join(reversed(names))
