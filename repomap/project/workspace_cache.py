"""WorkspaceCache — the process-wide table of project mapping sets.

A constructed service object: it owns the project table, the change
notifier and the background job queue, resolves repository handles
through one shared :class:`RepositoryCache`, and keeps every cached
:class:`MappingSet` current by listening to workspace change events.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from repomap.config import DOT_GIT
from repomap.project.connect import DisconnectOperation
from repomap.project.mapping import Mapping
from repomap.project.mapping_set import (
    MappingPersistenceError,
    MappingSet,
    delete_property_files,
)
from repomap.settings import CoreSettings, load_settings
from repomap.sync.jobs import JobQueue
from repomap.sync.notifier import ChangeNotifier, MappingChangeListener
from repomap.vcs.cache import RepositoryCache, RepositoryLookupError
from repomap.vcs.discovery import git_dir_for_work_tree
from repomap.vcs.repo import GitError, Repository
from repomap.workspace.events import (
    DeltaKind,
    EventType,
    ResourceChangeEvent,
    ResourceDelta,
)
from repomap.workspace.resources import Project, Resource, ResourceType
from repomap.workspace.workspace import Workspace

logger = logging.getLogger(__name__)

_CANDIDATE_KINDS = (DeltaKind.ADDED, DeltaKind.CHANGED)


class WorkspaceCache:
    """Map projects of a workspace to their :class:`MappingSet`.

    Parameters
    ----------
    workspace:
        The workspace whose projects are tracked.
    repository_cache:
        Shared repository handle cache; a private one is created when
        omitted and cleared again on :meth:`shutdown`.
    settings:
        Persistence settings; read from the environment when omitted.
    jobs:
        Queue running change notifications and disconnects.
    """

    def __init__(
        self,
        workspace: Workspace,
        *,
        repository_cache: RepositoryCache | None = None,
        settings: CoreSettings | None = None,
        jobs: JobQueue | None = None,
    ) -> None:
        self.workspace = workspace
        self._owns_cache = repository_cache is None
        self.repository_cache = repository_cache if repository_cache is not None else RepositoryCache()
        self.settings = settings if settings is not None else load_settings()
        self.jobs = jobs if jobs is not None else JobQueue()
        self.notifier = ChangeNotifier(self.jobs)
        self._lock = threading.RLock()
        self._projects: dict[Project, MappingSet] = {}
        self._attached = False

    # -- Workspace subscription -----------------------------------------------

    def attach(self, include_change: bool = True) -> None:
        """Start listening to workspace events.

        PRE_CLOSE uncaches a project, PRE_DELETE deletes its data, and with
        *include_change* every POST_CHANGE runs :meth:`update`.
        """
        mask = EventType.PRE_CLOSE | EventType.PRE_DELETE
        if include_change:
            mask |= EventType.POST_CHANGE
        self.workspace.add_listener(self._resource_changed, mask)
        self._attached = True
        logger.debug("Attached to workspace %s", self.workspace.root_dir)

    def detach(self) -> None:
        """Stop listening to workspace events."""
        self.workspace.remove_listener(self._resource_changed)
        self._attached = False
        logger.debug("Detached from workspace %s", self.workspace.root_dir)

    def _resource_changed(self, event: ResourceChangeEvent) -> None:
        if event.type is EventType.PRE_CLOSE and isinstance(event.resource, Project):
            self.uncache(event.resource)
        elif event.type is EventType.PRE_DELETE and isinstance(event.resource, Project):
            try:
                self.delete(event.resource)
            except MappingPersistenceError:
                logger.error(
                    "Cannot delete mapping data of %s", event.resource.name,
                    exc_info=True,
                )
        elif event.type is EventType.POST_CHANGE:
            self.update(event)

    # -- Project table --------------------------------------------------------

    def new_mapping_set(self, project: Project) -> MappingSet:
        """Create an empty mapping set wired to this cache."""
        return MappingSet(
            project,
            self.repository_cache,
            notifier=self.notifier,
            on_unmappable=self.schedule_disconnect,
            settings=self.settings,
        )

    def get(self, project: Project) -> MappingSet | None:
        """Return the mapping set of *project*, loading it on first access.

        Returns *None* if the project is not marked as version-controlled
        or its mappings cannot be loaded.
        """
        with self._lock:
            mapping_set = self._projects.get(project)
            if mapping_set is None and project.shared:
                try:
                    mapping_set = self.new_mapping_set(project).load()
                except MappingPersistenceError:
                    logger.error(
                        "Repository mappings of %s are missing", project.name,
                        exc_info=True,
                    )
                    return None
                self._projects[project] = mapping_set
            return mapping_set

    def add(self, project: Project, mapping_set: MappingSet) -> None:
        """Register *mapping_set* as the data of *project*."""
        logger.debug("add(%s)", project.name)
        with self._lock:
            self._projects[project] = mapping_set

    def uncache(self, project: Project) -> MappingSet | None:
        """Drop *project* from the table without touching its persisted data."""
        with self._lock:
            mapping_set = self._projects.pop(project, None)
        if mapping_set is not None:
            logger.debug("uncache(%s)", project.name)
        return mapping_set

    def delete(self, project: Project) -> None:
        """Delete the persisted mappings of *project* and uncache it.

        Raises
        ------
        MappingPersistenceError
            If the persisted data exists but cannot be removed.
        """
        logger.debug("delete(%s)", project.name)
        with self._lock:
            mapping_set = self._projects.get(project)
        if mapping_set is None:
            delete_property_files(project, self.settings)
        else:
            mapping_set.delete_property_files()
        self.uncache(project)

    def projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects)

    # -- Disconnect -----------------------------------------------------------

    def schedule_disconnect(self, project: Project) -> None:
        """Disconnect *project* in the background."""
        logger.info("Scheduling disconnect of %s", project.name)
        self.jobs.schedule(
            lambda: self.disconnect(project), f"disconnect {project.name}",
        )

    def disconnect(self, project: Project) -> None:
        """Disconnect *project* from version control now."""
        DisconnectOperation(self, project).run()

    # -- Incremental update ---------------------------------------------------

    def update(self, event: ResourceChangeEvent) -> list[Mapping]:
        """Pick up repositories that appeared below mapped projects.

        Every added or changed ``.git`` whose parent is the genuine work
        tree of the repository it names becomes a new mapping. Touched
        mapping sets are stored once the whole delta has been visited and
        their protected resources hidden; only then are listeners notified.
        Returns the new mappings.
        """
        if event.delta is None:
            return []
        touched: dict[Project, MappingSet] = {}
        added: list[Mapping] = []

        def visit(delta: ResourceDelta) -> bool:
            resource = delta.resource
            if resource.type is ResourceType.ROOT:
                return True
            if resource.type is ResourceType.PROJECT:
                return resource.is_accessible() and resource.project.shared
            if resource.is_linked():
                return False
            if resource.name != DOT_GIT or delta.kind not in _CANDIDATE_KINDS:
                return True
            mapping = self._mapping_for(resource)
            if mapping is None:
                return False
            project = resource.project
            mapping_set = self.get(project)
            if mapping_set is None:
                return False
            merged = mapping_set.merge([mapping], notify=False)
            if merged:
                touched[project] = mapping_set
                added.extend(merged)
            return False

        event.delta.accept(visit)

        for project, mapping_set in touched.items():
            try:
                mapping_set.store()
            except MappingPersistenceError:
                logger.error(
                    "Cannot store mappings of %s", project.name, exc_info=True,
                )
            mapping_set.mark_team_private_resources()
        for mapping in added:
            self.notifier.fire_changed(mapping)
        return added

    def _mapping_for(self, dot_git: Resource) -> Mapping | None:
        """Build a mapping for a new ``.git`` if its parent really is a work tree."""
        parent = dot_git.parent
        if parent is None or parent.location is None:
            return None
        location = parent.location
        git_dir = git_dir_for_work_tree(location)
        if git_dir is None:
            return None
        try:
            work_tree = self.repository_cache.lookup(git_dir).work_tree
        except (RepositoryLookupError, GitError):
            logger.debug("Cannot open %s", git_dir, exc_info=True)
            return None
        if work_tree is None or work_tree.resolve() != location.resolve():
            logger.debug(
                "Ignoring %s: its work tree is %s, not %s", git_dir, work_tree, location,
            )
            return None
        return Mapping.from_discovery(parent, git_dir)

    # -- Lookups --------------------------------------------------------------

    def get_repository_mapping(self, resource: Resource) -> Mapping | None:
        """Return the mapping of the repository *resource* belongs to."""
        project = resource.project
        if project is None:
            return None
        mapping_set = self.get(project)
        if mapping_set is None:
            return None
        return mapping_set.get_repository_mapping(resource)

    def get_repository_mapping_for_path(self, path: str | Path) -> Mapping | None:
        """Return the mapping of the first project whose work tree holds *path*."""
        target = Path(path).resolve()
        for project in self.workspace.projects():
            if not project.is_accessible():
                continue
            mapping = self.get_repository_mapping(project)
            if mapping is not None and mapping.contains(target):
                return mapping
        return None

    def find_repository_mapping(self, repository: Repository) -> Mapping | None:
        """Return a bound mapping of *repository* in any open project."""
        for project in self.workspace.projects():
            if not project.is_accessible():
                continue
            mapping_set = self.get(project)
            if mapping_set is None:
                continue
            for mapping in mapping_set.mappings():
                bound = mapping.repository
                if bound is not None and bound.directory == repository.directory:
                    return mapping
        return None

    # -- Listeners ------------------------------------------------------------

    def add_change_listener(self, listener: MappingChangeListener) -> None:
        self.notifier.add_listener(listener)

    def remove_change_listener(self, listener: MappingChangeListener) -> None:
        self.notifier.remove_listener(listener)

    # -- Lifecycle ------------------------------------------------------------

    def shutdown(self) -> None:
        """Detach, finish queued jobs, and drop every cached project."""
        if self._attached:
            self.detach()
        self.jobs.shutdown(wait=True)
        with self._lock:
            self._projects.clear()
        if self._owns_cache:
            self.repository_cache.clear()
        logger.debug("Workspace cache shut down")
