"""Worktrack web layer: FastAPI application factory, middleware and routes."""

from worktrack.web.app import create_app

__all__ = ["create_app"]
