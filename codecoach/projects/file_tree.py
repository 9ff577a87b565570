"""Turn generated project payloads into flat file lists."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from codecoach.projects.models import AppData, ProjectFile


def flatten_file_structure(structure: Mapping[str, Any], base_path: str = "") -> list[ProjectFile]:
    """
    Flatten a nested {"dir": {"file.js": "code"}} mapping into files.

    String values are files; mapping values are directories. Anything else
    (numbers, lists, nulls from a sloppy model) is dropped.
    """
    files: list[ProjectFile] = []
    for name, value in structure.items():
        path = f"{base_path}/{name}" if base_path else name
        if isinstance(value, Mapping):
            files.extend(flatten_file_structure(value, path))
        elif isinstance(value, str):
            files.append(ProjectFile(path=path, content=value))
    return files


def default_package_json(project_name: str) -> ProjectFile:
    """Create-react-app style package.json for projects that lack one."""
    manifest = {
        "name": project_name,
        "version": "0.1.0",
        "private": True,
        "dependencies": {
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "react-scripts": "5.0.1",
        },
        "scripts": {
            "start": "react-scripts start",
            "build": "react-scripts build",
            "test": "react-scripts test",
            "eject": "react-scripts eject",
        },
        "eslintConfig": {"extends": ["react-app"]},
        "browserslist": {
            "production": [">0.2%", "not dead", "not op_mini all"],
            "development": [
                "last 1 chrome version",
                "last 1 firefox version",
                "last 1 safari version",
            ],
        },
    }
    return ProjectFile(path="package.json", content=json.dumps(manifest, indent=2))


def files_from_payload(
    payload: Mapping[str, Any], project_name: str, ensure_package_json: bool = True
) -> list[ProjectFile]:
    """
    Files for a generated payload, adding a default package.json if asked.

    Accepts either a nested "fileStructure" or a flat "files" list.
    """
    files: list[ProjectFile] = []

    structure = payload.get("fileStructure")
    if isinstance(structure, Mapping):
        files.extend(flatten_file_structure(structure))

    for entry in payload.get("files") or []:
        if isinstance(entry, Mapping) and entry.get("path"):
            files.append(
                ProjectFile(
                    path=str(entry["path"]),
                    content=str(entry.get("content") or ""),
                    is_complete=bool(entry.get("isComplete", True)),
                )
            )

    if ensure_package_json and not any(file.path == "package.json" for file in files):
        files.append(default_package_json(project_name))

    return files


def app_data_from_payload(payload: Mapping[str, Any], ensure_package_json: bool = True) -> AppData:
    """Normalize a parsed model response into the stored project blob."""
    project_name = str(payload.get("projectName") or "").strip() or "untitled-project"
    challenges = payload.get("challenges")
    return AppData(
        project_name=project_name,
        description=payload.get("description"),
        files=files_from_payload(payload, project_name, ensure_package_json=ensure_package_json),
        challenges=challenges if isinstance(challenges, list) else [],
        explanation=payload.get("explanation"),
    )
