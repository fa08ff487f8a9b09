from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from .aggregate import GroupBy, OccupancyCell, aggregate, collect_groups
from .buckets import Bucket, Granularity, Weekday, generate_buckets
from .levels import Level, PROJECT_THRESHOLDS, SUBJECT_THRESHOLDS, ThresholdTable
from .records import AllocationRecord

# Calendar density policy
CALENDAR_SINGLE_ROW_LIMIT = 3
CALENDAR_DOUBLE_ROW_LIMIT = 6
CALENDAR_MAX_CIRCLES = 10

Cells = Mapping[str, Mapping[str, OccupancyCell]]


class ViewMode(str, Enum):
    CALENDAR = "calendar"
    HEATMAP = "heatmap"
    PROJECT_HEATMAP = "project-heatmap"


class Layout(str, Enum):
    LIST = "list"
    GRID = "grid"
    CIRCLES = "circles"
    ROW = "row"


@dataclass(frozen=True)
class ViewEntry:
    group_key: str
    display_label: str
    level: Level
    tooltip_lines: Tuple[str, ...]
    total_percentage: float = 0
    value_label: str = ""

    @property
    def tooltip(self) -> str:
        return "\n".join(self.tooltip_lines)


@dataclass(frozen=True)
class BucketView:
    bucket: Bucket
    layout: Layout
    entries: Tuple[ViewEntry, ...]
    overflow: int = 0
    overflow_tooltip: Optional[str] = None


def format_percentage(value: float) -> str:
    """60.0 -> '60', 60.5 -> '60.5', 0.1 + 0.2 -> '0.3'. Rounds to two decimals for display only."""
    value = round(float(value), 2)
    if value.is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0")

def initials(name: str) -> str:
    parts = name.split()
    if len(parts) >= 2:
        return f"{parts[0][0]}{parts[1][0]}".upper()
    return name[:1].upper() or "?"

def calendar_layout(occupants: int) -> Layout:
    if occupants <= CALENDAR_SINGLE_ROW_LIMIT: return Layout.LIST
    if occupants <= CALENDAR_DOUBLE_ROW_LIMIT: return Layout.GRID
    return Layout.CIRCLES


class CalendarRenderer:
    mode = ViewMode.CALENDAR
    granularity = Granularity.DAY
    group_by = GroupBy.SUBJECT
    thresholds: ThresholdTable = SUBJECT_THRESHOLDS

    def _tooltip(self, cell: OccupancyCell) -> Tuple[str, ...]:
        lines = [cell.label, f"Total: {format_percentage(cell.total_percentage)}%", "", "Projects:"]
        lines += [f"{r.project_code}: {format_percentage(r.percentage)}%" for r in cell.contributing_allocations]
        return tuple(lines)

    def render(self, cells: Cells, buckets: Sequence[Bucket], group_keys: Optional[Mapping[str, str]] = None) -> List[BucketView]:
        # Calendar days list only the subjects that occupy them
        views = []
        for bucket in buckets:
            occupying = list(cells.get(bucket.key, {}).values())
            layout = calendar_layout(len(occupying))
            shown = occupying[:CALENDAR_MAX_CIRCLES] if layout is Layout.CIRCLES else occupying
            entries = tuple(
                ViewEntry(
                    group_key=c.group_key,
                    display_label=initials(c.label) if layout is Layout.CIRCLES else c.label,
                    level=self.thresholds.classify(c.total_percentage),
                    tooltip_lines=self._tooltip(c),
                    total_percentage=c.total_percentage,
                    value_label=format_percentage(c.total_percentage),
                )
                for c in shown
            )
            overflow = len(occupying) - len(shown)
            views.append(BucketView(
                bucket=bucket, layout=layout, entries=entries, overflow=overflow,
                overflow_tooltip=f"{overflow} more employees" if overflow else None,
            ))
        return views


class _HeatmapRenderer(ABC):
    granularity = Granularity.WEEK

    @abstractmethod
    def _entry(self, key: str, label: str, cell: Optional[OccupancyCell], bucket: Bucket) -> ViewEntry:
        """One row's cell for one week; `cell` is None when nobody overlaps it."""

    def render(self, cells: Cells, buckets: Sequence[Bucket], group_keys: Mapping[str, str]) -> List[BucketView]:
        # Fixed grid: every row gets a cell in every bucket, occupied or not
        views = []
        for bucket in buckets:
            row = cells.get(bucket.key, {})
            entries = tuple(self._entry(key, label, row.get(key), bucket) for key, label in group_keys.items())
            views.append(BucketView(bucket=bucket, layout=Layout.ROW, entries=entries))
        return views


class SubjectHeatmapRenderer(_HeatmapRenderer):
    mode = ViewMode.HEATMAP
    group_by = GroupBy.SUBJECT
    thresholds: ThresholdTable = SUBJECT_THRESHOLDS

    def _entry(self, key, label, cell, bucket):
        total = cell.total_percentage if cell else 0
        return ViewEntry(
            group_key=key, display_label=label,
            level=self.thresholds.classify(total),
            tooltip_lines=(f"{label}: {format_percentage(total)}% (week of {bucket.label})",),
            total_percentage=total,
            value_label=format_percentage(total) if total > 0 else "",
        )


class ProjectHeatmapRenderer(_HeatmapRenderer):
    mode = ViewMode.PROJECT_HEATMAP
    group_by = GroupBy.PROJECT
    thresholds: ThresholdTable = PROJECT_THRESHOLDS

    def _entry(self, key, label, cell, bucket):
        total = cell.total_percentage if cell else 0
        names = [r.subject_name for r in cell.contributing_allocations] if cell else []
        headcount = f"{total / 100:.1f}"
        return ViewEntry(
            group_key=key, display_label=label,
            level=self.thresholds.classify(total),
            tooltip_lines=(
                f"{label}: {headcount} employees",
                f"Employees: {', '.join(names)}",
                f"Week of {bucket.label}",
            ),
            total_percentage=total,
            value_label=headcount if total > 0 else "",
        )


RENDERERS = {
    ViewMode.CALENDAR: CalendarRenderer(),
    ViewMode.HEATMAP: SubjectHeatmapRenderer(),
    ViewMode.PROJECT_HEATMAP: ProjectHeatmapRenderer(),
}

def get_renderer(mode: Union[str, ViewMode]):
    try:
        return RENDERERS[ViewMode(mode)]
    except ValueError:
        raise ValueError(f"Unknown view mode {mode!r}; expected one of {[m.value for m in ViewMode]}") from None

def build_view(
    mode: Union[str, ViewMode],
    records: Sequence[AllocationRecord],
    reference_date: Union[date, datetime],
    weeks: int = 12,
    offset: int = 0,
    week_starts_on: Weekday = Weekday.SUNDAY,
) -> List[BucketView]:
    """Runs buckets -> aggregate -> render for one view mode."""
    renderer = get_renderer(mode)
    buckets = generate_buckets(reference_date, weeks, renderer.granularity, week_starts_on, offset)
    cells = aggregate(records, buckets, renderer.group_by)
    return renderer.render(cells, buckets, collect_groups(records, renderer.group_by))
