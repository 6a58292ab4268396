"""Repository handles, the shared handle cache, and structural discovery."""

from repomap.vcs.cache import RepositoryCache, RepositoryLookupError
from repomap.vcs.discovery import (
    find_repository_directory,
    git_dir_for_work_tree,
    is_repository_directory,
)
from repomap.vcs.repo import GitError, Repository

__all__ = [
    "GitError",
    "Repository",
    "RepositoryCache",
    "RepositoryLookupError",
    "find_repository_directory",
    "git_dir_for_work_tree",
    "is_repository_directory",
]
