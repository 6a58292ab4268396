"""Connect a project to the repositories around it, or disconnect it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from repomap.project.finder import RepositoryFinder
from repomap.project.mapping import Mapping
from repomap.project.mapping_set import MappingPersistenceError, MappingSet
from repomap.workspace.resources import Project

if TYPE_CHECKING:
    from repomap.project.workspace_cache import WorkspaceCache

logger = logging.getLogger(__name__)


class ConnectError(Exception):
    """Raised when a project cannot be connected."""


class ConnectOperation:
    """Mark a project as version-controlled and persist its mappings.

    Parameters
    ----------
    cache:
        The workspace cache that will own the new mapping set.
    project:
        Project to connect.
    git_dir:
        Connect to this repository directory instead of searching.
    """

    def __init__(
        self,
        cache: WorkspaceCache,
        project: Project,
        git_dir: str | Path | None = None,
    ) -> None:
        self.cache = cache
        self.project = project
        self.git_dir = git_dir

    def run(self) -> MappingSet:
        """Connect the project and return its mapping set.

        Raises
        ------
        ConnectError
            If no repository is found, none of the candidates can be bound,
            or the mappings cannot be stored.
        """
        if not self.project.is_accessible():
            raise ConnectError(f"Project {self.project.name} is not accessible")

        if self.git_dir is not None:
            candidates = [Mapping.from_discovery(self.project, Path(self.git_dir))]
        else:
            candidates = RepositoryFinder(self.project, self.cache.settings).find()
        if not candidates:
            raise ConnectError(f"No repository found for {self.project.name}")

        mapping_set = self.cache.new_mapping_set(self.project)
        # a failing project-root mapping must not schedule a disconnect here
        mapping_set.on_unmappable = None
        mapping_set.set_repository_mappings(candidates)
        if not mapping_set.mappings():
            raise ConnectError(
                f"None of the repositories found for {self.project.name} could be mapped"
            )
        try:
            mapping_set.store()
        except MappingPersistenceError as exc:
            raise ConnectError(f"Cannot store mappings of {self.project.name}") from exc
        mapping_set.on_unmappable = self.cache.schedule_disconnect

        self.project.shared = True
        self.cache.add(self.project, mapping_set)
        mapping_set.mark_team_private_resources()
        logger.info(
            "Connected %s to %d repositories", self.project.name, len(mapping_set),
        )
        return mapping_set


class DisconnectOperation:
    """Remove a project from version control."""

    def __init__(self, cache: WorkspaceCache, project: Project) -> None:
        self.cache = cache
        self.project = project

    def run(self) -> None:
        mapping_set = self.cache.uncache(self.project)
        if mapping_set is not None:
            for resource in mapping_set.protected_resources():
                resource.team_private = False
        self.project.shared = False
        try:
            self.cache.delete(self.project)
        except MappingPersistenceError:
            logger.error(
                "Cannot delete mapping data of %s", self.project.name, exc_info=True,
            )
        logger.info("Disconnected %s", self.project.name)
