from __future__ import annotations

from pathlib import Path

from claudepack.addressing import project_key


def test_project_key_replaces_separators():
    assert project_key("/home/u/app") == "-home-u-app"


def test_project_key_accepts_path_objects():
    assert project_key(Path("/srv/projects/demo")) == "-srv-projects-demo"


def test_project_key_keeps_other_characters():
    assert project_key("/home/u/my app.v2") == "-home-u-my app.v2"


def test_project_key_is_lossy_for_dashes():
    """Distinct paths can share a key when they differ only by '-' versus '/'."""
    assert project_key("/a-b/c") == project_key("/a/b-c") == "-a-b-c"
