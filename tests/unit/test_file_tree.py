"""Unit tests for turning generated payloads into file lists."""

import json

from codecoach.projects.file_tree import (
    app_data_from_payload,
    default_package_json,
    files_from_payload,
    flatten_file_structure,
)


def test_flatten_nested_structure():
    files = flatten_file_structure(
        {"src": {"App.js": "app", "components": {"List.js": "list"}}, "README.md": "readme"}
    )
    assert [(f.path, f.content) for f in files] == [
        ("src/App.js", "app"),
        ("src/components/List.js", "list"),
        ("README.md", "readme"),
    ]


def test_flatten_drops_non_string_leaves():
    files = flatten_file_structure({"a.js": "ok", "b.js": None, "c": [1, 2], "d.js": 3})
    assert [f.path for f in files] == ["a.js"]


def test_default_package_json_added_once():
    files = files_from_payload({"fileStructure": {"index.js": ""}}, "demo")
    manifests = [f for f in files if f.path == "package.json"]
    assert len(manifests) == 1
    assert json.loads(manifests[0].content)["name"] == "demo"

    files = files_from_payload({"fileStructure": {"package.json": "{}"}}, "demo")
    assert [f.content for f in files if f.path == "package.json"] == ["{}"]


def test_flat_files_list_without_package_json():
    payload = {
        "files": [
            {"path": "src/App.js", "content": "x", "isComplete": False},
            {"content": "no path"},
            "garbage",
        ]
    }
    files = files_from_payload(payload, "demo", ensure_package_json=False)
    assert len(files) == 1
    assert files[0].path == "src/App.js"
    assert files[0].is_complete is False


def test_default_package_json_scripts():
    manifest = json.loads(default_package_json("x").content)
    assert manifest["scripts"]["start"] == "react-scripts start"


def test_app_data_tolerates_null_and_numeric_fields():
    payload = {
        "projectName": None,
        "description": None,
        "explanation": None,
        "files": [{"path": "src/App.js", "content": None}, {"content": "no path"}, "junk"],
        "challenges": [
            {
                "id": 7,
                "title": None,
                "description": 42,
                "featureName": None,
                "hints": ["first", None, 3],
                "filesPaths": "src/App.js",
                "completed": None,
            }
        ],
    }

    app_data = app_data_from_payload(payload, ensure_package_json=False)

    assert app_data.project_name == "untitled-project"
    assert app_data.description == ""
    assert [(f.path, f.content) for f in app_data.files] == [("src/App.js", "")]
    challenge = app_data.challenges[0]
    assert challenge.id == "7"
    assert (challenge.title, challenge.description, challenge.feature_name) == ("", "42", "")
    assert challenge.hints == ["first", "3"]
    assert challenge.files_paths == ["src/App.js"]
    assert challenge.completed is False


def test_app_data_ignores_non_list_challenges():
    app_data = app_data_from_payload({"projectName": "x", "challenges": "none yet"})
    assert app_data.challenges == []
    assert [f.path for f in app_data.files] == ["package.json"]
