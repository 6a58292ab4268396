"""Resource handles of the hierarchical workspace tree.

Handles are cheap value objects: two handles for the same project and
project-relative path compare equal, whether or not the resource exists.
All state (locations, links, markers) lives in the owning
:class:`~repomap.workspace.workspace.Workspace`.
"""

from __future__ import annotations

import enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repomap.workspace.workspace import Workspace

_SELF = PurePosixPath(".")


class ResourceType(enum.Enum):
    ROOT = "root"
    PROJECT = "project"
    FOLDER = "folder"
    FILE = "file"


def _to_relative(path: str | PurePosixPath) -> PurePosixPath:
    rel = PurePosixPath(str(path).replace("\\", "/").strip("/") or ".")
    if ".." in rel.parts:
        raise ValueError(f"Resource paths cannot leave their container: {path}")
    return rel


class Resource:
    """Base handle for every node of the workspace tree."""

    type: ResourceType

    def __init__(
        self,
        workspace: Workspace,
        project_name: str | None,
        path: PurePosixPath = _SELF,
    ) -> None:
        self._workspace = workspace
        self._project_name = project_name
        self._path = path

    # -- Identity -------------------------------------------------------------

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def name(self) -> str:
        if self._path == _SELF:
            return self._project_name or ""
        return self._path.name

    @property
    def project_relative_path(self) -> str:
        """Portable path below the project; ``""`` for the project itself."""
        return "" if self._path == _SELF else self._path.as_posix()

    @property
    def full_path(self) -> str:
        if self._project_name is None:
            return "/"
        if self._path == _SELF:
            return f"/{self._project_name}"
        return f"/{self._project_name}/{self._path.as_posix()}"

    @property
    def project(self) -> Project | None:
        if self._project_name is None:
            return None
        return Project(self._workspace, self._project_name)

    @property
    def parent(self) -> Container | None:
        if self._project_name is None:
            return None
        if self._path == _SELF:
            return self._workspace.root
        parent_path = self._path.parent
        if parent_path == _SELF:
            return Project(self._workspace, self._project_name)
        return Folder(self._workspace, self._project_name, parent_path)

    def _key(self) -> tuple:
        return (self.type, self._project_name, self._path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self._workspace is other._workspace and self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"{type(self).__name__}[{self.full_path}]"

    # -- Filesystem -----------------------------------------------------------

    @property
    def location(self) -> Path | None:
        """Absolute location on disk, or *None* if not stored locally."""
        if self._project_name is None:
            return self._workspace.root_dir
        return self._workspace._location_of(self._project_name, self._path)

    def exists(self) -> bool:
        loc = self.location
        if loc is None:
            return False
        if self.type is ResourceType.FILE:
            return loc.is_file()
        return loc.is_dir()

    def is_accessible(self) -> bool:
        project = self.project
        if project is None:
            return True
        return project.is_open() and self.exists()

    def is_linked(self) -> bool:
        """Return *True* if this resource is a linked resource."""
        if self._project_name is None or self._path == _SELF:
            return False
        return self._workspace._is_link(self._project_name, self._path)

    # -- Markers --------------------------------------------------------------

    @property
    def team_private(self) -> bool:
        """Hidden from normal browsing and building."""
        return self._workspace._is_team_private(self)

    @team_private.setter
    def team_private(self, value: bool) -> None:
        self._workspace._set_team_private(self, value)

    def as_container(self) -> Container | None:
        """Adapt this resource to a container, if it is one."""
        return self if isinstance(self, Container) else None


class File(Resource):
    type = ResourceType.FILE


class Container(Resource):
    """A resource that can hold other resources."""

    def _child_path(self, path: str | PurePosixPath) -> PurePosixPath:
        return self._path / _to_relative(path)

    def get_folder(self, path: str | PurePosixPath) -> Folder:
        return Folder(self._workspace, self._project_name, self._child_path(path))

    def get_file(self, path: str | PurePosixPath) -> File:
        return File(self._workspace, self._project_name, self._child_path(path))

    def find_member(self, path: str | PurePosixPath) -> Resource | None:
        """Return the existing resource at *path* below this container."""
        rel = _to_relative(path)
        if rel == _SELF:
            return self
        full = self._path / rel
        if self._workspace._is_link(self._project_name, full):
            folder = Folder(self._workspace, self._project_name, full)
            return folder if folder.exists() else None
        loc = self._workspace._location_of(self._project_name, full)
        if loc is None:
            return None
        if loc.is_dir():
            return Folder(self._workspace, self._project_name, full)
        if loc.is_file():
            return File(self._workspace, self._project_name, full)
        return None

    def members(self) -> list[Resource]:
        """Return the existing children, sorted by name."""
        children: dict[str, Resource] = {}
        loc = self.location
        if loc is not None and loc.is_dir():
            for entry in loc.iterdir():
                child_path = self._path / entry.name
                if entry.is_dir():
                    children[entry.name] = Folder(
                        self._workspace, self._project_name, child_path,
                    )
                elif entry.is_file():
                    children[entry.name] = File(
                        self._workspace, self._project_name, child_path,
                    )
        for link_path in self._workspace._links_below(self._project_name, self._path):
            children[link_path.name] = Folder(
                self._workspace, self._project_name, link_path,
            )
        return [children[name] for name in sorted(children)]


class Folder(Container):
    type = ResourceType.FOLDER


class Project(Container):
    """Top-level container; owns a location and workspace-private state."""

    type = ResourceType.PROJECT

    def __init__(self, workspace: Workspace, name: str) -> None:
        super().__init__(workspace, name, _SELF)

    def exists(self) -> bool:
        return self._workspace._has_project(self._project_name)

    def is_open(self) -> bool:
        return self._workspace._is_open(self._project_name)

    @property
    def shared(self) -> bool:
        """Whether the project is marked as version-controlled."""
        return self._workspace._is_shared(self._project_name)

    @shared.setter
    def shared(self, value: bool) -> None:
        self._workspace._set_shared(self._project_name, value)

    def working_location(self, area: str) -> Path:
        """Return (creating it) the private working directory for *area*."""
        path = self._workspace.metadata_dir / ".plugins" / area / self.name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def link_folder(self, path: str | PurePosixPath, target: str | Path) -> Folder:
        """Create a linked folder at *path* pointing at *target* on disk."""
        rel = _to_relative(path)
        self._workspace._add_link(self._project_name, rel, Path(target).resolve())
        return Folder(self._workspace, self._project_name, rel)


class WorkspaceRoot(Container):
    """The root of the tree; its members are the projects."""

    type = ResourceType.ROOT

    def __init__(self, workspace: Workspace) -> None:
        super().__init__(workspace, None, _SELF)

    def exists(self) -> bool:
        return True

    def find_member(self, path: str | PurePosixPath) -> Resource | None:
        rel = _to_relative(path)
        if rel == _SELF:
            return self
        project = Project(self._workspace, rel.parts[0])
        if not project.exists():
            return None
        if len(rel.parts) == 1:
            return project
        return project.find_member(PurePosixPath(*rel.parts[1:]))

    def members(self) -> list[Resource]:
        return list(self._workspace.projects())
