"""Tests for CoreSettings and environment parsing."""

from __future__ import annotations

import os
from pathlib import Path

from repomap.settings import CoreSettings, load_settings, parse_ceiling_directories


class TestCeilingDirectories:
    def test_empty(self):
        assert parse_ceiling_directories(None) == []
        assert parse_ceiling_directories("") == []

    def test_split_on_path_separator(self, tmp_path: Path):
        a, b = tmp_path / "a", tmp_path / "b"
        value = os.pathsep.join([str(a), "", str(b)])
        assert parse_ceiling_directories(value) == [a.resolve(), b.resolve()]

    def test_relative_entries_ignored(self, tmp_path: Path):
        value = os.pathsep.join(["relative/dir", str(tmp_path)])
        assert parse_ceiling_directories(value) == [tmp_path.resolve()]

    def test_duplicates_collapsed(self, tmp_path: Path):
        value = os.pathsep.join([str(tmp_path), str(tmp_path)])
        assert parse_ceiling_directories(value) == [tmp_path.resolve()]


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({})
        assert settings.ceiling_directories == []
        assert settings.find_in_children is True
        assert settings.include_linked is False
        assert settings.state_file_name == "GitProjectData.properties"

    def test_environment(self, tmp_path: Path):
        settings = load_settings({
            "GIT_CEILING_DIRECTORIES": str(tmp_path),
            "REPOMAP_FIND_IN_CHILDREN": "false",
            "REPOMAP_INCLUDE_LINKED": "yes",
        })
        assert settings.ceiling_directories == [tmp_path.resolve()]
        assert settings.find_in_children is False
        assert settings.include_linked is True

    def test_unrecognised_bool_uses_default(self):
        settings = load_settings({"REPOMAP_FIND_IN_CHILDREN": "maybe"})
        assert settings.find_in_children is True

    def test_overrides_win(self, tmp_path: Path):
        settings = load_settings(
            {"REPOMAP_FIND_IN_CHILDREN": "true"}, find_in_children=False,
        )
        assert settings.find_in_children is False

    def test_reads_process_environment(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        assert load_settings().ceiling_directories == [tmp_path.resolve()]

    def test_model(self):
        settings = CoreSettings(ceiling_directories=["/tmp"])
        assert settings.ceiling_directories == [Path("/tmp")]
