"""Resource change events and deltas published by a :class:`Workspace`."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from repomap.workspace.resources import Resource


class EventType(enum.IntFlag):
    """Kinds of workspace events; combine them into a listener mask."""

    POST_CHANGE = 1
    PRE_CLOSE = 2
    PRE_DELETE = 4


ALL_EVENTS = EventType.POST_CHANGE | EventType.PRE_CLOSE | EventType.PRE_DELETE


class DeltaKind(enum.Enum):
    """What happened to a resource."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


@dataclass
class ResourceDelta:
    """One node of a change tree, rooted at the workspace root."""

    resource: Resource
    kind: DeltaKind = DeltaKind.CHANGED
    children: list[ResourceDelta] = field(default_factory=list)

    def accept(self, visitor: Callable[[ResourceDelta], bool]) -> None:
        """Visit this delta and, while *visitor* returns *True*, its children."""
        if visitor(self):
            for child in list(self.children):
                child.accept(visitor)

    def child_for(self, resource: Resource) -> ResourceDelta | None:
        for child in self.children:
            if child.resource == resource:
                return child
        return None


@dataclass
class ResourceChangeEvent:
    """An event delivered to workspace listeners.

    ``resource`` is set for PRE_CLOSE/PRE_DELETE (the project),
    ``delta`` for POST_CHANGE.
    """

    type: EventType
    resource: Resource | None = None
    delta: ResourceDelta | None = None
