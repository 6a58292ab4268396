"""Structural checks for repository directories and upward discovery."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator

from repomap.config import (
    DOT_GIT,
    GITDIR_FILE_PREFIX,
    REPOSITORY_DIRS,
    REPOSITORY_FILES,
)

logger = logging.getLogger(__name__)


def is_repository_directory(path: str | Path) -> bool:
    """Return *True* if *path* has the layout of a repository directory."""
    path = Path(path)
    if not path.is_dir():
        return False
    for name in REPOSITORY_DIRS:
        if not (path / name).is_dir():
            return False
    for name in REPOSITORY_FILES:
        if not (path / name).is_file():
            return False
    return True


def read_git_file(path: str | Path) -> Path | None:
    """Resolve a git file (``gitdir: <path>``) to the directory it names.

    Returns *None* if *path* is not a readable git file.
    """
    path = Path(path)
    if not path.is_file():
        return None
    try:
        content = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        logger.debug("Cannot read git file %s", path, exc_info=True)
        return None
    if not content.startswith(GITDIR_FILE_PREFIX):
        return None
    target = Path(content[len(GITDIR_FILE_PREFIX):].strip())
    if not target.is_absolute():
        target = path.parent / target
    return target.resolve()


def git_dir_for_work_tree(directory: str | Path) -> Path | None:
    """Return the repository directory of a work-tree root, or *None*.

    Looks for ``<directory>/.git`` either as a repository directory or as a
    git file pointing at one.
    """
    dot_git = Path(directory) / DOT_GIT
    if is_repository_directory(dot_git):
        return dot_git
    target = read_git_file(dot_git)
    if target is not None and is_repository_directory(target):
        return target
    return None


def _canonical(path: Path) -> Path:
    return path.resolve()


def iter_repository_directories(
    start: str | Path,
    ceilings: Iterable[str | Path] = (),
) -> Iterator[Path]:
    """Yield every repository directory rooted at *start* or above it.

    The walk stops before entering a ceiling directory and at the
    filesystem root.
    """
    ceiling_set = {_canonical(Path(c)) for c in ceilings}
    current: Path | None = _canonical(Path(start))
    while current is not None and current not in ceiling_set:
        git_dir = git_dir_for_work_tree(current)
        if git_dir is not None:
            yield git_dir
        parent = current.parent
        current = parent if parent != current else None


def find_repository_directory(
    start: str | Path,
    ceilings: Iterable[str | Path] = (),
) -> Path | None:
    """Return the nearest repository directory at or above *start*."""
    return next(iter_repository_directories(start, ceilings), None)
