"""HTTP API for MedTutor."""

from .app import create_app, launch

__all__ = ["create_app", "launch"]
