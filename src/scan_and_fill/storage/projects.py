"""Project definitions persisted in projects.json."""

from __future__ import annotations

from pathlib import Path

from scan_and_fill.config import PROJECTS_PATH
from scan_and_fill.models.project import Project
from scan_and_fill.storage.local_json import (
    file_lock,
    read_json,
    read_json_locked,
    write_json_atomic,
)


class ProjectStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path or PROJECTS_PATH)

    def _records(self) -> list[dict]:
        data = read_json(self.path, {"projects": []})
        return data.get("projects", []) if isinstance(data, dict) else []

    def list_projects(self) -> list[Project]:
        data = read_json_locked(self.path, {"projects": []})
        records = data.get("projects", []) if isinstance(data, dict) else []
        return [Project.model_validate(r) for r in records]

    def get(self, project_id: str) -> Project | None:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    def upsert(self, project: Project) -> Project:
        """Save a project, merging into an existing record with the same id."""
        dump = project.model_dump(mode="json", exclude_unset=True)
        with file_lock(self.path, exclusive=True):
            records = self._records()
            for i, r in enumerate(records):
                if r.get("id") == project.id:
                    merged = {**r, **dump}
                    records[i] = merged
                    break
            else:
                merged = project.model_dump(mode="json")
                records.append(merged)
            write_json_atomic(self.path, {"projects": records})
        return Project.model_validate(merged)

    def delete(self, project_id: str) -> bool:
        with file_lock(self.path, exclusive=True):
            records = self._records()
            kept = [r for r in records if r.get("id") != project_id]
            if len(kept) == len(records):
                return False
            write_json_atomic(self.path, {"projects": kept})
        return True
