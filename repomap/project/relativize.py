"""Storage-stable paths from a container to its repository directory.

A mapping persists the repository directory relative to the container when
the two sit in one of the common layouts, so that moving the project and
the repository together keeps the stored mapping valid:

* repository inside the container: ``.git`` or ``sub/dir/.git``
* repository beside an ancestor of the container: ``../../.git``

Any other layout falls back to the absolute path.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePath


def _segments(path: PurePath) -> tuple[str, ...]:
    """Path segments without device or root."""
    return path.parts[1:] if path.anchor else path.parts


def _is_prefix(prefix: PurePath, path: PurePath) -> bool:
    if prefix.anchor != path.anchor:
        return False
    head, tail = _segments(prefix), _segments(path)
    return len(head) <= len(tail) and tail[: len(head)] == head


def _matching_segments(a: PurePath, b: PurePath) -> int:
    count = 0
    for x, y in zip(_segments(a), _segments(b)):
        if x != y:
            break
        count += 1
    return count


def relativize_git_dir(container_location: str | PurePath, git_dir: str | PurePath) -> str:
    """Return the string persisted for *git_dir* as seen from *container_location*.

    Both arguments must be absolute.
    """
    c_loc = PurePath(container_location)
    g_loc = PurePath(git_dir)
    if not c_loc.is_absolute() or not g_loc.is_absolute():
        raise ValueError("container and repository locations must be absolute")
    g_parent = g_loc.parent

    if _is_prefix(c_loc, g_loc):
        remainder = _segments(g_loc)[len(_segments(c_loc)):]
        return "/".join(remainder)
    if _is_prefix(g_parent, c_loc):
        ups = len(_segments(c_loc)) - _matching_segments(c_loc, g_parent)
        return "../" * ups + g_loc.name
    return g_loc.as_posix()


def resolve_git_dir(container_location: str | Path, stored: str) -> Path:
    """Reverse of :func:`relativize_git_dir`: the absolute repository directory."""
    joined = Path(container_location) / Path(stored)
    return Path(os.path.normpath(joined))
