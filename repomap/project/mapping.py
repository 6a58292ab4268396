"""Mapping — binds one container of a project to one repository directory."""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath

from repomap.config import GITDIR_KEY_SUFFIX
from repomap.project.relativize import relativize_git_dir, resolve_git_dir
from repomap.vcs.repo import Repository
from repomap.workspace.resources import Container, Resource

logger = logging.getLogger(__name__)


class Mapping:
    """A container-relative path bound to a repository directory.

    The two persisted strings never change after construction. Everything
    else (container, repository handle, absolute paths) is resolved by
    :meth:`repomap.project.mapping_set.MappingSet.map` and dropped again by
    :meth:`clear`. A mapping without a repository handle is *unbound* and
    must not be used for path translation.

    Use :meth:`from_discovery` or :meth:`from_properties` to construct one.
    """

    def __init__(self, container_path: str, git_dir: str) -> None:
        self._container_path = container_path
        self._git_dir = git_dir
        self._lock = threading.RLock()
        self._container: Container | None = None
        self._repository: Repository | None = None
        self._git_dir_absolute: Path | None = None
        self._work_tree_prefix: str | None = None

    # -- Construction ---------------------------------------------------------

    @staticmethod
    def is_initial_key(key: str) -> bool:
        """Return *True* if *key* names a persisted mapping."""
        return key.endswith(GITDIR_KEY_SUFFIX)

    @classmethod
    def from_properties(cls, props: dict[str, str], key: str) -> Mapping:
        """Rebuild a mapping from a ``<containerPath>.gitdir`` entry."""
        if not cls.is_initial_key(key):
            raise ValueError(f"Not a mapping key: {key!r}")
        return cls(key[: -len(GITDIR_KEY_SUFFIX)], props[key])

    @classmethod
    def from_discovery(cls, container: Container, git_dir: str | Path) -> Mapping:
        """Create a mapping for a repository directory found near *container*."""
        location = container.location
        if location is None:
            raise ValueError(f"{container} has no location on disk")
        stored = relativize_git_dir(location, Path(git_dir).absolute())
        mapping = cls(container.project_relative_path, stored)
        mapping._container = container
        return mapping

    # -- Persisted identity ---------------------------------------------------

    @property
    def container_path(self) -> str:
        """Project-relative path of the mapped container (``""`` for the project)."""
        return self._container_path

    @property
    def git_dir(self) -> str:
        """Repository directory as persisted, relative when possible."""
        return self._git_dir

    @property
    def key(self) -> str:
        return self._container_path + GITDIR_KEY_SUFFIX

    def store(self, props: dict[str, str]) -> None:
        props[self.key] = self._git_dir

    # -- Resolved state -------------------------------------------------------

    @property
    def container(self) -> Container | None:
        with self._lock:
            return self._container

    def set_container(self, container: Container) -> None:
        with self._lock:
            self._container = container

    @property
    def repository(self) -> Repository | None:
        with self._lock:
            return self._repository

    def set_repository(self, repository: Repository) -> None:
        """Bind the repository handle and derive the work-tree prefix."""
        with self._lock:
            self._repository = repository
            work_tree = repository.work_tree
            if work_tree is None:
                self._work_tree_prefix = None
            else:
                prefix = work_tree.as_posix()
                if not prefix.endswith("/"):
                    prefix += "/"
                self._work_tree_prefix = prefix

    def resolve_git_dir_path(self) -> Path | None:
        """Compute the absolute repository directory from the container location."""
        with self._lock:
            if self._container is None:
                return None
            location = self._container.location
            if location is None:
                return None
            self._git_dir_absolute = resolve_git_dir(location, self._git_dir)
            return self._git_dir_absolute

    @property
    def git_dir_absolute_path(self) -> Path | None:
        with self._lock:
            return self._git_dir_absolute

    @property
    def work_tree(self) -> Path | None:
        repo = self.repository
        return None if repo is None else repo.work_tree

    @property
    def work_tree_prefix(self) -> str | None:
        """Work tree path with exactly one trailing ``/``."""
        with self._lock:
            return self._work_tree_prefix

    @property
    def is_bound(self) -> bool:
        with self._lock:
            return self._repository is not None

    def clear(self) -> None:
        """Drop every resolved field, leaving the mapping unbound."""
        with self._lock:
            self._container = None
            self._repository = None
            self._git_dir_absolute = None
            self._work_tree_prefix = None

    # -- Path translation -----------------------------------------------------

    def repo_relative_path(self, target: Resource | str | Path) -> str | None:
        """Return the path of *target* inside the work tree.

        ``""`` is the work tree itself; *None* means *target* is outside the
        work tree or the mapping is unbound.
        """
        prefix = self.work_tree_prefix
        if prefix is None:
            return None
        if isinstance(target, Resource):
            location = target.location
            if location is None:
                return None
            path = location.as_posix()
        else:
            path = Path(target).as_posix()
        if path == prefix[:-1]:
            return ""
        if path.startswith(prefix):
            return str(PurePosixPath(path[len(prefix):]))
        return None

    def contains(self, target: Resource | str | Path) -> bool:
        """Return *True* if *target* lies in this mapping's work tree."""
        return self.repo_relative_path(target) is not None

    def __repr__(self) -> str:
        return f"Mapping[{self._container_path} -> {self._git_dir}]"
