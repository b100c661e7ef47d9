"""
Logging module for Waypoint.
This module provides the console logging setup shared by the supervisor and its console.
"""

from .setup import setup_logging, set_console_level

__all__ = ["setup_logging", "set_console_level"]
