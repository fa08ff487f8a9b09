"""Tests for the calendar and heatmap view renderers."""

from datetime import date

import pytest

from staffgrid.aggregate import aggregate, collect_groups
from staffgrid.buckets import generate_buckets
from staffgrid.levels import Level
from staffgrid.views import (CalendarRenderer, Layout, _HeatmapRenderer, ProjectHeatmapRenderer, SubjectHeatmapRenderer,
                             ViewMode, build_view, calendar_layout, format_percentage, get_renderer, initials)

DAY = date(2024, 4, 10)


def crowd(make_record, n, day=DAY):
    names = ["Ann Lee", "Ben Ng", "Cy Ray", "Di Fox", "Ed Kim", "Flo Ito", "Gus Ota", "Hal Roe",
             "Ivy Poe", "Jo Wu", "Kai Li", "Lu Ma"]
    return [make_record(subject=names[i], project="P1", start=day, pct=20) for i in range(n)]


def render_calendar(records):
    renderer = CalendarRenderer()
    buckets = generate_buckets(DAY, 1, renderer.granularity)
    views = renderer.render(aggregate(records, buckets, renderer.group_by), buckets)
    return {v.bucket.start: v for v in views}


class TestCalendar:
    @pytest.mark.parametrize("n,layout", [(0, Layout.LIST), (1, Layout.LIST), (3, Layout.LIST), (4, Layout.GRID),
                                          (6, Layout.GRID), (7, Layout.CIRCLES), (10, Layout.CIRCLES), (11, Layout.CIRCLES)])
    def test_density_policy(self, n, layout):
        assert calendar_layout(n) is layout

    def test_scenario_c_seven_circles_no_overflow(self, make_record):
        view = render_calendar(crowd(make_record, 7))[DAY]
        assert view.layout is Layout.CIRCLES
        assert len(view.entries) == 7
        assert view.overflow == 0
        assert view.overflow_tooltip is None
        assert view.entries[0].display_label == "AL"

    def test_circles_cap_at_ten(self, make_record):
        view = render_calendar(crowd(make_record, 12))[DAY]
        assert len(view.entries) == 10
        assert view.overflow == 2
        assert view.overflow_tooltip == "2 more employees"

    def test_list_layout_keeps_names_and_tooltip(self, make_record):
        records = [
            make_record(subject="Alice", project="P1 - Apollo", start=DAY, pct=50, project_code="P1"),
            make_record(subject="Alice", project="P2 - Gemini", start=DAY, pct=60, project_code="P2"),
        ]
        view = render_calendar(records)[DAY]
        assert view.layout is Layout.LIST
        (entry,) = view.entries
        assert entry.display_label == "Alice"
        assert entry.level is Level.OVER
        assert entry.tooltip == "Alice\nTotal: 110%\n\nProjects:\nP1: 50%\nP2: 60%"

    def test_grid_layout(self, make_record):
        assert render_calendar(crowd(make_record, 5))[DAY].layout is Layout.GRID

    def test_unoccupied_days_are_empty_lists(self, make_record):
        views = render_calendar(crowd(make_record, 2))
        assert len(views) == 30
        assert views[date(2024, 4, 11)].entries == ()


class TestSubjectHeatmap:
    def test_tooltip_and_empty_cells(self, make_record):
        records = [
            make_record(subject="Alice", start=date(2024, 3, 11), end=date(2024, 3, 12), pct=60),
            make_record(subject="Bob", start=date(2024, 3, 20), pct=30),
        ]
        views = build_view(ViewMode.HEATMAP, records, date(2024, 3, 15), weeks=2)
        first, second = views
        assert first.layout is Layout.ROW
        assert [e.display_label for e in first.entries] == ["Alice", "Bob"]
        alice, bob = first.entries
        assert alice.tooltip == "Alice: 60% (week of Mar 10)"
        assert alice.level is Level.MEDIUM
        assert alice.value_label == "60"
        assert bob.level is Level.EMPTY
        assert bob.value_label == ""
        assert bob.tooltip == "Bob: 0% (week of Mar 10)"
        assert second.entries[1].tooltip == "Bob: 30% (week of Mar 17)"

    def test_fractional_total_in_tooltip(self, make_record):
        records = [make_record(start=date(2024, 3, 11), pct=12.5)]
        (view,) = build_view("heatmap", records, date(2024, 3, 11), weeks=1)
        assert view.entries[0].tooltip == "Alice: 12.5% (week of Mar 10)"


class TestProjectHeatmap:
    def test_tooltip_and_scale(self, make_record):
        records = [
            make_record(subject="Bob", project="P1 - Apollo", start=date(2024, 3, 11), pct=100),
            make_record(subject="Alice", project="P1 - Apollo", start=date(2024, 3, 12), pct=50),
        ]
        (view,) = build_view(ViewMode.PROJECT_HEATMAP, records, date(2024, 3, 11), weeks=1)
        (entry,) = view.entries
        assert entry.tooltip == "P1 - Apollo: 1.5 employees\nEmployees: Alice, Bob\nWeek of Mar 10"
        assert entry.value_label == "1.5"
        assert entry.level is Level.MEDIUM

    def test_empty_week(self, make_record):
        records = [make_record(project="P9", start=date(2024, 1, 2))]
        (view,) = build_view(ViewMode.PROJECT_HEATMAP, records, date(2024, 3, 11), weeks=1)
        assert view.entries[0].tooltip_lines == ("P9: 0.0 employees", "Employees: ", "Week of Mar 10")
        assert view.entries[0].level is Level.EMPTY


def test_dispatch_is_closed():
    assert isinstance(get_renderer("calendar"), CalendarRenderer)
    assert isinstance(get_renderer(ViewMode.HEATMAP), SubjectHeatmapRenderer)
    assert isinstance(get_renderer("project-heatmap"), ProjectHeatmapRenderer)
    with pytest.raises(ValueError, match="view mode"):
        get_renderer("list")


def test_build_view_rejects_bad_week_count(make_record):
    with pytest.raises(ValueError):
        build_view(ViewMode.HEATMAP, [], DAY, weeks=0)


def test_heatmap_rows_follow_collected_groups(make_record):
    records = [make_record(subject="Zoe"), make_record(subject="Amy")]
    renderer = SubjectHeatmapRenderer()
    buckets = generate_buckets(date(2030, 1, 1), 3, "week")
    views = renderer.render(aggregate(records, buckets, "subject"), buckets, collect_groups(records, "subject"))
    assert all([e.display_label for e in v.entries] == ["Amy", "Zoe"] for v in views)


@pytest.mark.parametrize("value,text", [(60, "60"), (60.0, "60"), (60.5, "60.5"), (0, "0"),
                                        (0.1 + 0.2, "0.3"), (33.333333, "33.33"), (1000, "1000")])
def test_format_percentage(value, text):
    assert format_percentage(value) == text


@pytest.mark.parametrize("name,expected", [("Ada Lovelace", "AL"), ("cher", "C"), ("Jean Luc Picard", "JL"), ("", "?")])
def test_initials(name, expected):
    assert initials(name) == expected


def test_fractional_sums_display_rounded_but_stay_exact(make_record):
    records = [make_record(start=date(2024, 3, 11), pct=0.1), make_record(project="P2", start=date(2024, 3, 11), pct=0.2)]
    (view,) = build_view(ViewMode.HEATMAP, records, date(2024, 3, 11), weeks=1)
    entry = view.entries[0]
    assert entry.tooltip == "Alice: 0.3% (week of Mar 10)"
    assert entry.value_label == "0.3"
    assert entry.total_percentage == 0.1 + 0.2


def test_heatmap_base_requires_an_entry_hook():
    with pytest.raises(TypeError):
        _HeatmapRenderer()

    class NoHook(_HeatmapRenderer):
        pass

    with pytest.raises(TypeError):
        NoHook()
