"""Shared task list with optimistic mutations."""

from keepsake.tasks.coordinator import BoardState, TaskBoard, order_tasks

__all__ = ["BoardState", "TaskBoard", "order_tasks"]
