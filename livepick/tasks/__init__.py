"""
Tasks package - Picker specs and their running instances.
"""

from .spec import ProducerKind, TaskSpec
from .task import TaskInstance, TaskStatus, start_task

__all__ = ["ProducerKind", "TaskInstance", "TaskSpec", "TaskStatus", "start_task"]
