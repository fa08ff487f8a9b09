"""Pytest configuration and fixtures for the staffgrid test suite."""

import os
from datetime import date

# Rich sizes its console on import; give CLI tables room before staffgrid loads
os.environ.setdefault("COLUMNS", "200")

import pytest

from staffgrid import ledger
from staffgrid.records import AllocationRecord


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point the ledger and config at a throwaway directory for every test."""
    home = tmp_path / "staffgrid-home"
    monkeypatch.setattr(ledger, "DATA_DIR", home)
    return home


@pytest.fixture
def make_record():
    """Factory for AllocationRecords with terse defaults."""
    counter = {"n": 0}

    def _make(subject="Alice", project="P1", start=date(2024, 1, 1), end=None, pct=50, **kw):
        counter["n"] += 1
        return AllocationRecord(
            id=kw.pop("id", f"a{counter['n']}"),
            subject_id=kw.pop("subject_id", subject),
            subject_name=subject,
            project_id=kw.pop("project_id", project),
            project_name=project,
            start_date=start,
            end_date=end or start,
            percentage=pct,
            **kw,
        )

    return _make
