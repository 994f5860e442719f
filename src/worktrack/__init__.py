"""Worktrack - Role-scoped work tracking backend.

This package provides the authorization, audit and notification engine for
a multi-tenant project/task tracker serving admin, manager and member roles,
exposed through a FastAPI REST surface backed by PostgreSQL.
"""

__version__ = "0.1.0"
