"""repomap — bind workspace containers to the git repositories around them."""

__version__ = "1.0.0"

from repomap.project.connect import ConnectError, ConnectOperation, DisconnectOperation
from repomap.project.finder import RepositoryFinder
from repomap.project.mapping import Mapping
from repomap.project.mapping_set import (
    MapFailure,
    MappingPersistenceError,
    MappingSet,
    MapResult,
)
from repomap.project.workspace_cache import WorkspaceCache
from repomap.settings import CoreSettings, load_settings
from repomap.sync.jobs import JobQueue
from repomap.sync.notifier import ChangeNotifier
from repomap.vcs.cache import RepositoryCache, RepositoryLookupError
from repomap.vcs.repo import GitError, Repository
from repomap.workspace.workspace import Workspace

__all__ = [
    "__version__",
    # Discovery and mappings
    "Mapping",
    "MapFailure",
    "MapResult",
    "MappingPersistenceError",
    "MappingSet",
    "RepositoryFinder",
    "WorkspaceCache",
    # Connect / disconnect
    "ConnectError",
    "ConnectOperation",
    "DisconnectOperation",
    # Repository handles
    "GitError",
    "Repository",
    "RepositoryCache",
    "RepositoryLookupError",
    # Infrastructure
    "ChangeNotifier",
    "CoreSettings",
    "JobQueue",
    "Workspace",
    "load_settings",
]
