"""Background indexing."""

from searchplane.daemon.scheduler import IndexingScheduler, SchedulerState, SchedulerStatus

__all__ = ["IndexingScheduler", "SchedulerState", "SchedulerStatus"]
