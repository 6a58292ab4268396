"""Repository — an opened, shareable handle on a repository directory.

Configuration is read by running git through :func:`subprocess.run`.
Handles are obtained through :class:`repomap.vcs.cache.RepositoryCache`
so that every mapping bound to the same directory shares one instance.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when a git subprocess returns a non-zero exit code."""


def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command via subprocess and return the result.

    Parameters
    ----------
    *args:
        Arguments passed after ``git``.
    cwd:
        Working directory for the command.
    check:
        If *True*, raise :class:`GitError` on non-zero exit.
    """
    cmd = ["git", *args]
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found") from exc
    if check and result.returncode != 0:
        raise GitError(
            f"git {' '.join(args)} failed (rc={result.returncode}): "
            f"{result.stderr.strip()}"
        )
    return result


class Repository:
    """Handle on one repository directory.

    Parameters
    ----------
    directory:
        The repository (metadata) directory, e.g. ``<work tree>/.git``.
        Stored in canonical form.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).resolve()
        self._config: dict[str, str] | None = None

    # -- Configuration --------------------------------------------------------

    def _read_config(self) -> dict[str, str]:
        """Read ``<gitdir>/config`` into a flat ``section.key -> value`` dict."""
        result = _run_git(
            "config", "--file", str(self.directory / "config"), "--list",
            check=False,
        )
        if result.returncode != 0:
            raise GitError(
                f"Cannot read config of {self.directory}: {result.stderr.strip()}"
            )
        values: dict[str, str] = {}
        for line in result.stdout.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                values[key.strip().lower()] = value
        return values

    def config_value(self, key: str) -> str | None:
        """Return a repository config value such as ``core.worktree``."""
        if self._config is None:
            self._config = self._read_config()
        return self._config.get(key.lower())

    # -- Layout ---------------------------------------------------------------

    @property
    def is_bare(self) -> bool:
        """Return *True* if the repository has no work tree."""
        if self.config_value("core.worktree"):
            return False
        return (self.config_value("core.bare") or "").lower() == "true"

    @property
    def work_tree(self) -> Path | None:
        """Return the directory whose contents this repository tracks.

        ``core.worktree`` wins when configured (relative to the repository
        directory); a bare repository has no work tree; otherwise the work
        tree is the parent of the repository directory.
        """
        configured = self.config_value("core.worktree")
        if configured:
            path = Path(configured)
            if not path.is_absolute():
                path = self.directory / path
            return Path(os.path.normpath(path)).resolve()
        if self.is_bare:
            return None
        return self.directory.parent

    def __repr__(self) -> str:
        return f"Repository[{self.directory}]"
