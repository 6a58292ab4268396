"""Workspace — registry of projects and publisher of resource change events."""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable

from repomap.workspace.events import (
    ALL_EVENTS,
    DeltaKind,
    EventType,
    ResourceChangeEvent,
    ResourceDelta,
)
from repomap.workspace.resources import Project, Resource, WorkspaceRoot

logger = logging.getLogger(__name__)

ResourceChangeListener = Callable[[ResourceChangeEvent], None]


class Workspace:
    """A tree of projects rooted at a directory on disk.

    Parameters
    ----------
    root_dir:
        Directory holding project contents by default.
    metadata_dir:
        Directory for private per-project working areas. Defaults to
        ``<root_dir>/.metadata``.
    """

    def __init__(
        self,
        root_dir: str | Path,
        metadata_dir: str | Path | None = None,
    ) -> None:
        self.root_dir = Path(root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_dir = (
            Path(metadata_dir).resolve() if metadata_dir else self.root_dir / ".metadata"
        )
        self._lock = threading.RLock()
        self._locations: dict[str, Path | None] = {}
        self._open: set[str] = set()
        self._shared: set[str] = set()
        self._links: dict[str, dict[PurePosixPath, Path]] = {}
        self._team_private: set[Resource] = set()
        self._listeners: dict[ResourceChangeListener, EventType] = {}

    @property
    def root(self) -> WorkspaceRoot:
        return WorkspaceRoot(self)

    # -- Projects -------------------------------------------------------------

    def project(self, name: str) -> Project:
        """Return the handle for project *name* (it may not exist)."""
        return Project(self, name)

    def projects(self) -> list[Project]:
        with self._lock:
            names = sorted(self._locations)
        return [Project(self, name) for name in names]

    def create_project(
        self,
        name: str,
        location: str | Path | None = None,
        *,
        local: bool = True,
    ) -> Project:
        """Create and open a project.

        Parameters
        ----------
        location:
            Directory of the project contents; defaults to
            ``<root_dir>/<name>``.
        local:
            If *False*, the project has no location on disk.
        """
        if "/" in name or not name:
            raise ValueError(f"Invalid project name: {name!r}")
        loc: Path | None = None
        if local:
            loc = Path(location).resolve() if location else self.root_dir / name
            loc.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if name in self._locations:
                raise ValueError(f"Project already exists: {name}")
            self._locations[name] = loc
            self._open.add(name)
        logger.debug("Created project %s at %s", name, loc)
        return Project(self, name)

    def open_project(self, project: Project) -> None:
        with self._lock:
            if project.name in self._locations:
                self._open.add(project.name)

    def close_project(self, project: Project) -> None:
        """Close *project*, notifying PRE_CLOSE listeners first."""
        self._fire(ResourceChangeEvent(EventType.PRE_CLOSE, resource=project))
        with self._lock:
            self._open.discard(project.name)

    def delete_project(self, project: Project, *, delete_content: bool = False) -> None:
        """Delete *project*, notifying PRE_DELETE listeners first."""
        self._fire(ResourceChangeEvent(EventType.PRE_DELETE, resource=project))
        location = project.location
        with self._lock:
            self._locations.pop(project.name, None)
            self._open.discard(project.name)
            self._shared.discard(project.name)
            self._links.pop(project.name, None)
            self._team_private = {
                r for r in self._team_private if r.project != project
            }
        if delete_content and location is not None and location.is_dir():
            shutil.rmtree(location)

    # -- Change events --------------------------------------------------------

    def add_listener(
        self,
        listener: ResourceChangeListener,
        mask: EventType = ALL_EVENTS,
    ) -> None:
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._listeners[listener] = mask

    def remove_listener(self, listener: ResourceChangeListener) -> None:
        with self._lock:
            self._listeners.pop(listener, None)

    def notify_added(self, *resources: Resource) -> ResourceChangeEvent:
        """Publish a POST_CHANGE event reporting *resources* as added."""
        return self._notify(resources, DeltaKind.ADDED)

    def notify_changed(self, *resources: Resource) -> ResourceChangeEvent:
        """Publish a POST_CHANGE event reporting *resources* as changed."""
        return self._notify(resources, DeltaKind.CHANGED)

    def notify_removed(self, *resources: Resource) -> ResourceChangeEvent:
        """Publish a POST_CHANGE event reporting *resources* as removed."""
        return self._notify(resources, DeltaKind.REMOVED)

    def _notify(self, resources: Iterable[Resource], kind: DeltaKind) -> ResourceChangeEvent:
        event = ResourceChangeEvent(
            EventType.POST_CHANGE, delta=build_delta(self.root, resources, kind),
        )
        self._fire(event)
        return event

    def _fire(self, event: ResourceChangeEvent) -> None:
        with self._lock:
            targets = [l for l, mask in self._listeners.items() if mask & event.type]
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.error("Resource change listener %r failed", listener, exc_info=True)

    # -- State used by resource handles ---------------------------------------

    def _has_project(self, name: str | None) -> bool:
        with self._lock:
            return name in self._locations

    def _is_open(self, name: str | None) -> bool:
        with self._lock:
            return name in self._open

    def _is_shared(self, name: str | None) -> bool:
        with self._lock:
            return name in self._shared

    def _set_shared(self, name: str | None, value: bool) -> None:
        with self._lock:
            if value and name in self._locations:
                self._shared.add(name)
            elif not value:
                self._shared.discard(name)

    def _add_link(self, name: str | None, path: PurePosixPath, target: Path) -> None:
        with self._lock:
            if name not in self._locations:
                raise ValueError(f"No such project: {name}")
            self._links.setdefault(name, {})[path] = target

    def _is_link(self, name: str | None, path: PurePosixPath) -> bool:
        with self._lock:
            return path in self._links.get(name, {})

    def _links_below(self, name: str | None, path: PurePosixPath) -> list[PurePosixPath]:
        with self._lock:
            links = list(self._links.get(name, {}))
        return [link for link in links if link.parent == path]

    def _location_of(self, name: str | None, path: PurePosixPath) -> Path | None:
        with self._lock:
            if name not in self._locations:
                return None
            base = self._locations[name]
            links = self._links.get(name, {})
            # longest linked prefix wins
            for link in sorted(links, key=lambda p: len(p.parts), reverse=True):
                if path == link or link in path.parents:
                    return links[link] / path.relative_to(link)
        if base is None:
            return None
        if path == PurePosixPath("."):
            return base
        return base / path

    def _is_team_private(self, resource: Resource) -> bool:
        with self._lock:
            return resource in self._team_private

    def _set_team_private(self, resource: Resource, value: bool) -> None:
        with self._lock:
            if value:
                self._team_private.add(resource)
            else:
                self._team_private.discard(resource)


def build_delta(
    root: Resource,
    resources: Iterable[Resource],
    kind: DeltaKind,
) -> ResourceDelta:
    """Build a delta tree from the workspace root down to each of *resources*.

    Intermediate nodes are CHANGED; each given resource gets *kind*.
    """
    tree = ResourceDelta(root, DeltaKind.CHANGED)
    for resource in resources:
        chain: list[Resource] = []
        node: Resource | None = resource
        while node is not None and node != root:
            chain.append(node)
            node = node.parent
        current = tree
        for step in reversed(chain):
            child = current.child_for(step)
            if child is None:
                child = ResourceDelta(step, DeltaKind.CHANGED)
                current.children.append(child)
            current = child
        current.kind = kind
    return tree
