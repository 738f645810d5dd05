"""Background workers."""

from moodpulse.workers.task_queue import BackgroundTaskQueue

__all__ = ["BackgroundTaskQueue"]
