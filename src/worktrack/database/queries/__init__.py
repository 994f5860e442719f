"""Query functions for Worktrack database operations.

Each module groups the queries of one entity. Query functions flush but
never commit; services wrap them in a single transaction per mutation.
"""

from worktrack.database.queries import audit, notification, project, task, task_log, user

__all__ = ["audit", "notification", "project", "task", "task_log", "user"]
