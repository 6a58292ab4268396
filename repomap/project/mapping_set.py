"""MappingSet — the repository mappings of one project.

Owns the table of :class:`Mapping` objects for a project, persists it in
the project's private working area, binds every mapping to a live
repository handle through the shared :class:`RepositoryCache`, and tracks
the *protected* resources: each bound ``.git`` directory and its ancestors
up to the project, which must be hidden from normal browsing and building.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable

from pydantic import BaseModel

from repomap.config import (
    DOT_GIT,
    STATE_FILE_COMMENT,
    STATE_TMP_PREFIX,
    STATE_TMP_SUFFIX,
)
from repomap.project.mapping import Mapping
from repomap.project.properties import dump_properties, load_properties
from repomap.settings import CoreSettings
from repomap.sync.notifier import ChangeNotifier
from repomap.vcs.cache import RepositoryCache, RepositoryLookupError
from repomap.vcs.discovery import is_repository_directory
from repomap.vcs.repo import GitError
from repomap.workspace.resources import Container, Project, Resource

logger = logging.getLogger(__name__)


class MappingPersistenceError(Exception):
    """Raised when the mapping property file cannot be read, written or deleted."""


class MapFailure(str, enum.Enum):
    """Why a mapping could not be bound."""

    CONTAINER_GONE = "container_gone"
    LOCATION_UNRESOLVABLE = "location_unresolvable"
    NOT_A_REPOSITORY = "not_a_repository"
    LOOKUP_FAILED = "lookup_failed"


class MapResult(BaseModel):
    """Outcome of :meth:`MappingSet.map`."""

    ok: bool = True
    failure: MapFailure | None = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.ok


def property_file(project: Project, settings: CoreSettings) -> Path:
    """Return the property file holding the mappings of *project*."""
    return project.working_location(settings.state_area) / settings.state_file_name


def delete_property_files(project: Project, settings: CoreSettings) -> None:
    """Remove the private working area holding the mappings of *project*.

    Deleting an already missing area is a no-op.
    """
    area = project.working_location(settings.state_area)
    try:
        shutil.rmtree(area)
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise MappingPersistenceError(f"Cannot delete {area}") from exc
    logger.debug("Deleted mapping data for %s", project.name)


class MappingSet:
    """Repository mappings of one project.

    Parameters
    ----------
    project:
        The project whose containers are mapped.
    repository_cache:
        Shared cache every repository handle is resolved through.
    notifier:
        Receives a change event for every successfully bound mapping.
    on_unmappable:
        Called with the project when its own (project-root) mapping can no
        longer be bound; normally schedules a disconnect.
    settings:
        Where the property file lives.
    """

    def __init__(
        self,
        project: Project,
        repository_cache: RepositoryCache,
        *,
        notifier: ChangeNotifier | None = None,
        on_unmappable: Callable[[Project], None] | None = None,
        settings: CoreSettings | None = None,
    ) -> None:
        self.project = project
        self.repository_cache = repository_cache
        self.notifier = notifier
        self.on_unmappable = on_unmappable
        self.settings = settings if settings is not None else CoreSettings()
        self._lock = threading.RLock()
        self._mappings: dict[str, Mapping] = {}
        self._by_container: dict[Container, Mapping] = {}
        self._protected: set[Resource] = set()

    # -- Table ----------------------------------------------------------------

    def mappings(self) -> list[Mapping]:
        with self._lock:
            return list(self._mappings.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._mappings)

    def set_repository_mappings(self, mappings: Iterable[Mapping]) -> bool:
        """Replace the table with *mappings* and bind them all.

        When two mappings claim the same container the first one wins.
        Returns *True* if every mapping was bound.
        """
        with self._lock:
            self._mappings.clear()
            for mapping in mappings:
                self._mappings.setdefault(mapping.container_path, mapping)
        return self.remap_all()

    def merge(self, mappings: Iterable[Mapping], *, notify: bool = True) -> list[Mapping]:
        """Add *mappings* to the table, binding each one.

        A mapping identical to an already bound one is skipped; a mapping
        that cannot be bound is not kept. Replacing the mapping of a
        container drops the protection that came from the old repository.
        Returns the newly bound mappings.
        """
        added: list[Mapping] = []
        for mapping in mappings:
            previously_protected: set[Resource] = set()
            with self._lock:
                existing = self._mappings.get(mapping.container_path)
                if (
                    existing is not None
                    and existing.git_dir == mapping.git_dir
                    and existing.is_bound
                ):
                    continue
                if existing is not None:
                    previously_protected = set(self._protected)
                    self._forget(existing)
                    existing.clear()
                self._mappings[mapping.container_path] = mapping
            if self.map(mapping, notify=notify):
                added.append(mapping)
            else:
                with self._lock:
                    if self._mappings.get(mapping.container_path) is mapping:
                        del self._mappings[mapping.container_path]
            # a replaced repository may leave folders that are no longer hidden
            for resource in previously_protected - self.protected_resources():
                resource.team_private = False
        return added

    # -- Binding --------------------------------------------------------------

    def remap_all(self) -> bool:
        """Rebind every mapping, dropping the ones that fail.

        The protected set and the container lookup table are rebuilt from
        scratch. Returns *True* if every mapping was bound.
        """
        with self._lock:
            self._protected.clear()
            self._by_container.clear()
            mappings = list(self._mappings.values())
        all_ok = True
        for mapping in mappings:
            if not self.map(mapping):
                all_ok = False
                with self._lock:
                    if self._mappings.get(mapping.container_path) is mapping:
                        del self._mappings[mapping.container_path]
        return all_ok

    def map(self, mapping: Mapping, *, notify: bool = True) -> MapResult:
        """Bind *mapping* to its container and repository handle.

        Parameters
        ----------
        notify:
            Fire a change event on success. Callers that persist first
            pass *False* and notify themselves.
        """
        mapping.clear()
        with self._lock:
            self._forget(mapping)

        resource = self.project.find_member(mapping.container_path)
        container = resource.as_container() if resource is not None else None
        if container is None:
            return self._unmap(
                mapping, MapFailure.CONTAINER_GONE,
                f"mapped container {mapping.container_path!r} is gone",
            )
        mapping.set_container(container)

        git_dir = mapping.resolve_git_dir_path()
        if git_dir is None:
            return self._unmap(
                mapping, MapFailure.LOCATION_UNRESOLVABLE,
                f"{container} has no location on disk",
            )

        if not is_repository_directory(git_dir):
            return self._unmap(
                mapping, MapFailure.NOT_A_REPOSITORY,
                f"{git_dir} is not a repository directory",
            )

        try:
            mapping.set_repository(self.repository_cache.lookup(git_dir))
        except (RepositoryLookupError, GitError) as exc:
            return self._unmap(mapping, MapFailure.LOOKUP_FAILED, str(exc))

        with self._lock:
            self._by_container[container] = mapping
            self._protect_git_dir(container, git_dir)

        logger.debug("Mapped %s -> %r", container, mapping.repository)
        if notify:
            self.fire_changed(mapping)
        return MapResult()

    def fire_changed(self, mapping: Mapping) -> None:
        if self.notifier is not None:
            self.notifier.fire_changed(mapping)

    def _unmap(self, mapping: Mapping, failure: MapFailure, detail: str) -> MapResult:
        mapping.clear()
        with self._lock:
            self._forget(mapping)
        logger.warning(
            "Cannot map %r in project %s: %s", mapping, self.project.name, detail,
        )
        if mapping.container_path == "" and self.on_unmappable is not None:
            self.on_unmappable(self.project)
        return MapResult(ok=False, failure=failure, detail=detail)

    def _forget(self, mapping: Mapping) -> None:
        removed = False
        for resource, bound in list(self._by_container.items()):
            if bound is mapping:
                del self._by_container[resource]
                removed = True
        if removed:
            self._rebuild_protected()

    def _rebuild_protected(self) -> None:
        # every entry must stem from a mapping that is still bound
        self._protected.clear()
        for container, bound in self._by_container.items():
            git_dir = bound.git_dir_absolute_path
            if git_dir is not None:
                self._protect_git_dir(container, git_dir)

    def _protect_git_dir(self, container: Container, git_dir: Path) -> None:
        dot_git = container.find_member(DOT_GIT)
        if dot_git is not None and _same_path(dot_git.location, git_dir):
            self._protect(dot_git)

    def _protect(self, resource: Resource) -> None:
        current: Resource | None = resource
        while current is not None and current != self.project:
            logger.debug("Protect %s", current)
            self._protected.add(current)
            current = current.parent

    # -- Queries --------------------------------------------------------------

    def is_protected(self, resource: Resource) -> bool:
        """Return *True* if *resource* is a ``.git`` directory or one of its ancestors."""
        with self._lock:
            return resource in self._protected

    def has_inner_repositories(self) -> bool:
        with self._lock:
            return bool(self._protected)

    def protected_resources(self) -> set[Resource]:
        with self._lock:
            return set(self._protected)

    def get_repository_mapping(self, resource: Resource) -> Mapping | None:
        """Return the mapping of the nearest mapped container above *resource*."""
        current: Resource | None = resource
        while current is not None:
            if current.is_accessible():
                with self._lock:
                    mapping = self._by_container.get(current)
                if mapping is not None:
                    return mapping
            current = current.parent
        return None

    def mark_team_private_resources(self) -> None:
        """Hide every protected resource from normal browsing and building."""
        for resource in self.protected_resources():
            resource.team_private = True

    # -- Persistence ----------------------------------------------------------

    @property
    def property_file(self) -> Path:
        return property_file(self.project, self.settings)

    def store(self) -> None:
        """Write the table to the property file, replacing it atomically.

        Raises
        ------
        MappingPersistenceError
            If the temporary file cannot be written or renamed.
        """
        dat = self.property_file
        props: dict[str, str] = {}
        for mapping in self.mappings():
            mapping.store(props)
        logger.debug("Save %s", dat)

        tmp: str | None = None
        try:
            fd, tmp = tempfile.mkstemp(
                prefix=STATE_TMP_PREFIX, suffix=STATE_TMP_SUFFIX, dir=dat.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                dump_properties(props, fh, STATE_FILE_COMMENT)
            os.replace(tmp, dat)
            tmp = None
        except OSError as exc:
            raise MappingPersistenceError(f"Saving mappings to {dat} failed") from exc
        finally:
            if tmp is not None:
                try:
                    os.unlink(tmp)
                except OSError:
                    logger.debug("Cannot remove %s", tmp, exc_info=True)

    def load(self) -> MappingSet:
        """Read the property file, bind every mapping, and self-heal.

        Mappings that fail to bind are dropped and the pruned table is
        stored again right away.

        Raises
        ------
        MappingPersistenceError
            If the property file cannot be read, or the pruned table
            cannot be written.
        """
        dat = self.property_file
        logger.debug("Load %s", dat)
        try:
            with open(dat, encoding="utf-8") as fh:
                props = load_properties(fh)
        except OSError as exc:
            raise MappingPersistenceError(f"Loading mappings from {dat} failed") from exc

        with self._lock:
            self._mappings.clear()
            for key in props:
                if Mapping.is_initial_key(key):
                    mapping = Mapping.from_properties(props, key)
                    self._mappings[mapping.container_path] = mapping

        if not self.remap_all():
            logger.info("Pruned unmappable entries of %s", self.project.name)
            self.store()
        return self

    def delete_property_files(self) -> None:
        delete_property_files(self.project, self.settings)

    def __repr__(self) -> str:
        return f"MappingSet[{self.project.name}: {self.mappings()!r}]"


def _same_path(a: Path | None, b: Path) -> bool:
    if a is None:
        return False
    return a.resolve() == b.resolve()
