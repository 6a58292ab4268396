"""Repository discovery, project mappings, and their workspace-wide cache."""

from repomap.project.connect import ConnectError, ConnectOperation, DisconnectOperation
from repomap.project.finder import RepositoryFinder
from repomap.project.mapping import Mapping
from repomap.project.mapping_set import (
    MapFailure,
    MappingPersistenceError,
    MappingSet,
    MapResult,
)
from repomap.project.relativize import relativize_git_dir, resolve_git_dir
from repomap.project.workspace_cache import WorkspaceCache

__all__ = [
    "ConnectError",
    "ConnectOperation",
    "DisconnectOperation",
    "MapFailure",
    "MapResult",
    "Mapping",
    "MappingPersistenceError",
    "MappingSet",
    "RepositoryFinder",
    "WorkspaceCache",
    "relativize_git_dir",
    "resolve_git_dir",
]
