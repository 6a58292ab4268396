"""Tests for persisted repository paths (relative when possible)."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from repomap.project.relativize import relativize_git_dir, resolve_git_dir


class TestRelativize:
    def test_git_dir_directly_inside_container(self):
        assert relativize_git_dir("/work/proj", "/work/proj/.git") == ".git"

    def test_git_dir_deeper_inside_container(self):
        assert relativize_git_dir("/work/proj", "/work/proj/a/b/.git") == "a/b/.git"

    def test_git_dir_in_parent(self):
        assert relativize_git_dir("/work/proj", "/work/.git") == "../.git"

    def test_git_dir_in_grandparent(self):
        assert relativize_git_dir("/work/a/b/proj", "/work/.git") == "../../../.git"

    def test_unrelated_layout_is_absolute(self):
        assert relativize_git_dir("/work/proj", "/elsewhere/repo/.git") == "/elsewhere/repo/.git"

    def test_sibling_directory_is_absolute(self):
        # the repository's parent is /work/other, which does not contain /work/proj
        assert relativize_git_dir("/work/proj", "/work/other/.git") == "/work/other/.git"

    def test_prefix_is_segment_wise(self):
        result = relativize_git_dir("/work/proj", "/work/project/.git")
        assert result == "/work/project/.git"

    def test_trailing_separators_ignored(self):
        assert relativize_git_dir("/work/proj/", "/work/proj/.git/") == ".git"

    def test_relative_arguments_rejected(self):
        with pytest.raises(ValueError):
            relativize_git_dir("proj", "/work/proj/.git")


class TestResolve:
    @pytest.mark.parametrize(
        "container, git_dir",
        [
            ("/work/proj", "/work/proj/.git"),
            ("/work/proj", "/work/proj/sub/.git"),
            ("/work/a/proj", "/work/.git"),
            ("/work/proj", "/other/.git"),
        ],
    )
    def test_resolve_reproduces_git_dir(self, container: str, git_dir: str):
        stored = relativize_git_dir(container, git_dir)
        resolved = resolve_git_dir(Path(container), stored)
        assert PurePosixPath(resolved.as_posix()) == PurePosixPath(git_dir)

    def test_resolve_survives_moving_both(self, tmp_path: Path):
        stored = relativize_git_dir(tmp_path / "old" / "proj", tmp_path / "old" / ".git")
        moved = resolve_git_dir(tmp_path / "new" / "proj", stored)
        assert moved == tmp_path / "new" / ".git"
