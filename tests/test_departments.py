"""Tests for the department hierarchy helpers."""

import logging

import pytest

from staffgrid.departments import build_tree, children_of, department_path, descendants, would_cycle


def dept(name, parent=None, **kw):
    return {"name": name, "parent_department_id": parent, "is_active": True, "is_deleted": False, **kw}


@pytest.fixture
def org():
    return {
        "eng": dept("Engineering"),
        "be": dept("Backend", "eng"),
        "fe": dept("Frontend", "eng"),
        "db": dept("Databases", "be"),
        "ops": dept("Operations"),
        "old": dept("Archive", "eng", is_deleted=True),
    }


def shape(nodes):
    return [(n.name, shape(n.children)) for n in nodes]


class TestBuildTree:
    def test_nesting_and_sibling_order(self, org):
        assert shape(build_tree(org)) == [
            ("Engineering", [("Backend", [("Databases", [])]), ("Frontend", [])]),
            ("Operations", []),
        ]

    def test_orphans_surface_at_top(self, org, caplog):
        org["eng"]["is_deleted"] = True
        with caplog.at_level(logging.WARNING, logger="staffgrid"):
            roots = build_tree(org)
        assert [n.name for n in roots] == ["Backend", "Frontend", "Operations"]
        assert roots[0].children[0].name == "Databases"
        assert "missing parent" in caplog.text

    def test_cycle_is_broken_not_dropped(self, caplog):
        looped = {"a": dept("Alpha", "b"), "b": dept("Beta", "a")}
        with caplog.at_level(logging.WARNING, logger="staffgrid"):
            roots = build_tree(looped)
        assert shape(roots) == [("Alpha", [("Beta", [])])]
        assert "cycle" in caplog.text

    def test_empty(self):
        assert build_tree({}) == []

    def test_inactive_flag_carried(self, org):
        org["ops"]["is_active"] = False
        assert build_tree(org)[1].is_active is False


class TestQueries:
    def test_children_of_roots_and_parent(self, org):
        assert children_of(org, None) == ["eng", "ops"]
        assert children_of(org, "eng") == ["be", "fe"]

    def test_descendants_skip_deleted(self, org):
        assert descendants(org, "eng") == {"be", "fe", "db"}
        assert descendants(org, "db") == set()

    @pytest.mark.parametrize("dept_id,parent,expected", [
        ("eng", "db", True), ("eng", "eng", True), ("db", "fe", False), ("be", None, False), ("ops", "be", False),
    ])
    def test_would_cycle(self, org, dept_id, parent, expected):
        assert would_cycle(org, dept_id, parent) is expected

    def test_department_path(self, org):
        assert department_path(org, "db") == "Engineering / Backend / Databases"
        assert department_path(org, "ops") == "Operations"
        assert department_path(org, "missing") == ""
