"""
Waypoint: a small supervisor for externally configured services.

It launches executables from a persisted set of named configurations,
captures their stdout/stderr into per-instance log records and exposes
start, kill and status operations on the running instances.
"""

__version__ = "0.1.0"
