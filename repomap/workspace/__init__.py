"""Hierarchical workspace model: projects, folders, files and change events."""

from repomap.workspace.events import (
    ALL_EVENTS,
    DeltaKind,
    EventType,
    ResourceChangeEvent,
    ResourceDelta,
)
from repomap.workspace.resources import (
    Container,
    File,
    Folder,
    Project,
    Resource,
    ResourceType,
    WorkspaceRoot,
)
from repomap.workspace.workspace import Workspace, build_delta

__all__ = [
    "ALL_EVENTS",
    "Container",
    "DeltaKind",
    "EventType",
    "File",
    "Folder",
    "Project",
    "Resource",
    "ResourceChangeEvent",
    "ResourceDelta",
    "ResourceType",
    "Workspace",
    "WorkspaceRoot",
    "build_delta",
]
