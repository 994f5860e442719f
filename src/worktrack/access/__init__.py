"""Access control for Worktrack: principals and the access evaluator."""

from worktrack.access.evaluator import (
    Action,
    Decision,
    DenyReason,
    can,
    enforce,
    evaluate,
    is_related_to_project,
    is_related_to_task,
)
from worktrack.access.principal import Principal

__all__ = [
    "Action",
    "Decision",
    "DenyReason",
    "Principal",
    "can",
    "enforce",
    "evaluate",
    "is_related_to_project",
    "is_related_to_task",
]
