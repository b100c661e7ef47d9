"""Exceptions raised by the supervisor package."""


class WaypointError(Exception):
    """Base class for all supervisor errors."""


class ConfigLoadError(WaypointError):
    """The persisted service configuration is missing or unparsable."""


class ConfigSaveError(WaypointError):
    """The service configuration could not be written to disk."""


class ConfigNotFound(WaypointError, KeyError):
    """A service was requested by a display name that has no configuration."""

    def __init__(self, display_name: str) -> None:
        super().__init__(display_name)
        self.display_name = display_name

    def __str__(self) -> str:
        return f"No service configuration named '{self.display_name}'"


class SpawnFailed(WaypointError):
    """The operating system refused to start a configured executable."""

    def __init__(self, display_name: str, path: str, reason: str) -> None:
        super().__init__(display_name, path, reason)
        self.display_name = display_name
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return f"Failed to start '{self.display_name}' ({self.path}): {self.reason}"
