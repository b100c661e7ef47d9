"""
Local package for the Waypoint supervisor.

This package provides the effective configuration through `app_globals`,
the supervisor itself and the operator console.
"""

from .config import app_globals

__all__ = ["app_globals"]
