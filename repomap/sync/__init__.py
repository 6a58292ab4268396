"""Background jobs and mapping change notification."""

from repomap.sync.jobs import JobQueue
from repomap.sync.notifier import ChangeNotifier, MappingChangeListener

__all__ = ["ChangeNotifier", "JobQueue", "MappingChangeListener"]
