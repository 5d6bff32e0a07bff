"""Tests for project persistence."""

import json
from pathlib import Path

from scan_and_fill.models.project import Project, SpreadsheetConfig
from scan_and_fill.storage.projects import ProjectStore


def test_empty_store(tmp_path: Path):
    store = ProjectStore(tmp_path / "projects.json")
    assert store.list_projects() == []
    assert store.get("acme") is None


def test_add_and_get(tmp_path: Path):
    store = ProjectStore(tmp_path / "projects.json")
    store.upsert(Project(
        id="acme",
        name="ACME",
        root_path="/srv/invoices",
        category_mapping={"Carburant": "Fuel"},
        spreadsheet=SpreadsheetConfig(file_path="/srv/budget.xlsx", sheet_name="2026"),
    ))

    project = store.get("acme")

    assert project.name == "ACME"
    assert project.category_mapping == {"Carburant": "Fuel"}
    assert project.spreadsheet.month_start_cell == "B1"
    data = json.loads((tmp_path / "projects.json").read_text())
    assert [p["id"] for p in data["projects"]] == ["acme"]


def test_upsert_merges_only_set_fields(tmp_path: Path):
    store = ProjectStore(tmp_path / "projects.json")
    store.upsert(Project(id="acme", name="ACME", root_path="/srv/invoices",
                         amount_pattern=r"total (\d+)"))

    merged = store.upsert(Project(id="acme", root_path="/srv/moved"))

    assert merged.root_path == "/srv/moved"
    assert merged.name == "ACME"
    assert merged.amount_pattern == r"total (\d+)"
    assert len(store.list_projects()) == 1


def test_delete(tmp_path: Path):
    store = ProjectStore(tmp_path / "projects.json")
    store.upsert(Project(id="acme", root_path="/a"))
    store.upsert(Project(id="globex", root_path="/b"))

    assert store.delete("acme") is True
    assert store.delete("acme") is False
    assert [p.id for p in store.list_projects()] == ["globex"]
