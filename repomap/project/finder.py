"""RepositoryFinder — locate repository directories near a container."""

from __future__ import annotations

import logging
from pathlib import Path

from repomap.config import DOT_GIT
from repomap.project.mapping import Mapping
from repomap.settings import CoreSettings, load_settings
from repomap.vcs.discovery import git_dir_for_work_tree
from repomap.workspace.resources import Container, Project

logger = logging.getLogger(__name__)


class RepositoryFinder:
    """Search for repositories connected to a container.

    For a project the search starts at the project location and walks up
    towards the filesystem root, stopping before any ceiling directory.
    Other containers are only checked at their own location. With
    ``find_in_children`` enabled, child containers are searched too
    (skipping ``.git`` and, unless requested, linked resources).

    Candidates are returned in discovery order; a repository directory
    reached twice (by canonical path) is registered only once.

    Parameters
    ----------
    container:
        Where to start searching.
    settings:
        Ceiling directories and the children flag; read from the
        environment when omitted.
    """

    def __init__(
        self,
        container: Container,
        settings: CoreSettings | None = None,
    ) -> None:
        self.container = container
        self.settings = settings if settings is not None else load_settings()
        self.find_in_children = self.settings.find_in_children
        self._ceilings = {Path(c).resolve() for c in self.settings.ceiling_directories}
        self._git_dirs: set[Path] = set()
        self._results: list[Mapping] = []

    def find(self, include_linked: bool | None = None) -> list[Mapping]:
        """Run the search and return the candidate mappings.

        Parameters
        ----------
        include_linked:
            Descend into linked resources; defaults to the setting.
        """
        if include_linked is None:
            include_linked = self.settings.include_linked
        self._git_dirs.clear()
        self._results = []
        self._find(self.container, include_linked)
        logger.debug(
            "Found %d repositories for %s", len(self._results), self.container,
        )
        return list(self._results)

    @property
    def git_dirs(self) -> set[Path]:
        """Canonical repository directories registered by the last search."""
        return set(self._git_dirs)

    def _find(self, container: Container, include_linked: bool) -> None:
        if not include_linked and container.is_linked():
            return
        location = container.location
        if location is None:
            logger.debug("Skipping %s: no location on disk", container)
            return

        if isinstance(container, Project):
            self._find_in_directory_and_parents(container, location)
        else:
            self._find_in_directory(container, location)

        if not self.find_in_children:
            return
        for child in container.members():
            if isinstance(child, Container) and child.name != DOT_GIT:
                self._find(child, include_linked)

    def _find_in_directory_and_parents(self, container: Container, start: Path) -> None:
        path: Path | None = start
        while path is not None and path not in self._ceilings:
            self._find_in_directory(container, path)
            parent = path.parent
            path = parent if parent != path else None

    def _find_in_directory(self, container: Container, directory: Path) -> None:
        git_dir = git_dir_for_work_tree(directory)
        if git_dir is not None:
            self._register(container, git_dir)

    def _register(self, container: Container, git_dir: Path) -> None:
        try:
            canonical = git_dir.resolve(strict=True)
        except OSError:
            logger.debug("Cannot canonicalise %s", git_dir, exc_info=True)
            return
        if canonical in self._git_dirs:
            return
        self._git_dirs.add(canonical)
        self._results.append(Mapping.from_discovery(container, git_dir))
