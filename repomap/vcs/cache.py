"""RepositoryCache — process-wide table of repository handles."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from repomap.vcs.discovery import is_repository_directory
from repomap.vcs.repo import Repository

logger = logging.getLogger(__name__)


class RepositoryLookupError(OSError):
    """Raised when a repository directory cannot be opened."""


class RepositoryCache:
    """Share one :class:`Repository` per canonical repository directory.

    Lookups are idempotent: the same instance is returned for the same
    canonical path until it is evicted or the cache is cleared.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._repositories: dict[Path, Repository] = {}

    def lookup(self, git_dir: str | Path) -> Repository:
        """Return the handle for *git_dir*, opening it on first use.

        Raises
        ------
        RepositoryLookupError
            If *git_dir* is not a repository directory.
        """
        try:
            key = Path(git_dir).resolve(strict=True)
        except OSError as exc:
            raise RepositoryLookupError(f"Cannot resolve {git_dir}") from exc

        with self._lock:
            repo = self._repositories.get(key)
            if repo is not None:
                return repo
            if not is_repository_directory(key):
                raise RepositoryLookupError(f"Not a repository directory: {key}")
            repo = Repository(key)
            self._repositories[key] = repo
            logger.debug("Opened %r", repo)
            return repo

    def evict(self, git_dir: str | Path) -> Repository | None:
        """Drop the handle for *git_dir*; return it if one was cached."""
        key = Path(git_dir).resolve()
        with self._lock:
            return self._repositories.pop(key, None)

    def clear(self) -> None:
        """Drop every cached handle."""
        with self._lock:
            self._repositories.clear()

    def repositories(self) -> list[Repository]:
        """Return a snapshot of the cached handles."""
        with self._lock:
            return list(self._repositories.values())

    def __contains__(self, git_dir: object) -> bool:
        if not isinstance(git_dir, (str, Path)):
            return False
        with self._lock:
            return Path(git_dir).resolve() in self._repositories

    def __len__(self) -> int:
        with self._lock:
            return len(self._repositories)
