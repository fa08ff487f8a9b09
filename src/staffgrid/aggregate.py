from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from .buckets import Bucket
from .records import AllocationRecord


class GroupBy(str, Enum):
    SUBJECT = "subject"
    PROJECT = "project"


@dataclass(frozen=True)
class OccupancyCell:
    group_key: str
    label: str
    bucket_key: str
    total_percentage: float
    contributing_allocations: Tuple[AllocationRecord, ...]


def _parse_group_by(group_by) -> GroupBy:
    try:
        return GroupBy(group_by)
    except ValueError:
        raise ValueError(f"Unknown group_by {group_by!r}; expected 'subject' or 'project'") from None

def _group_of(record: AllocationRecord, group_by: GroupBy) -> Tuple[str, str]:
    if group_by is GroupBy.SUBJECT:
        return record.subject_id, record.subject_name
    return record.project_id, record.project_name

def overlaps(record: AllocationRecord, bucket: Bucket) -> bool:
    # Inclusive on both ends; a partial overlap counts the full percentage
    return record.start_date <= bucket.end and record.end_date >= bucket.start

def collect_groups(records: Iterable[AllocationRecord], group_by: Union[str, GroupBy]) -> Dict[str, str]:
    """Every group present in the records, keyed by id and ordered by label."""
    group_by = _parse_group_by(group_by)
    groups = {}
    for r in records:
        key, label = _group_of(r, group_by)
        groups.setdefault(key, label)
    return dict(sorted(groups.items(), key=lambda kv: (kv[1], kv[0])))

def aggregate(
    records: Sequence[AllocationRecord],
    buckets: Sequence[Bucket],
    group_by: Union[str, GroupBy],
) -> Dict[str, Dict[str, OccupancyCell]]:
    """
    Sums overlapping allocation percentages per bucket and per group.

    Every bucket key is present in the result, mapping to the cells of the
    groups that occupy it (ordered by label). Within a cell, contributions
    are ordered by subject name, then project name, then id.
    """
    group_by = _parse_group_by(group_by)
    ordered = sorted(records, key=lambda r: r.sort_key)

    result = {}
    for bucket in buckets:
        hits: Dict[str, List[AllocationRecord]] = {}
        labels = {}
        for record in ordered:
            if not overlaps(record, bucket): continue
            key, label = _group_of(record, group_by)
            hits.setdefault(key, []).append(record)
            labels.setdefault(key, label)

        cells = {}
        for key in sorted(hits, key=lambda k: (labels[k], k)):
            contributions = tuple(hits[key])
            cells[key] = OccupancyCell(
                group_key=key, label=labels[key], bucket_key=bucket.key,
                total_percentage=sum(r.percentage for r in contributions),
                contributing_allocations=contributions,
            )
        result[bucket.key] = cells
    return result
