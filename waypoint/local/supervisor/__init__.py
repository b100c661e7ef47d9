"""
The Supervisor package.
Launches configured services and captures their output.

This package contains the central ServiceSupervisor class and its helper
modules, which together handle the service configurations, the spawning
and killing of service processes and the capture of their logs.
"""
from .errors import ConfigLoadError, ConfigNotFound, ConfigSaveError, SpawnFailed, WaypointError
from .log_capture import LogCollector
from .models import STATUS_RUNNING, STATUS_STOPPED, LogRecord, ServiceConfig, ServiceInstance
from .persistence import ConfigStore
from .supervisor import ServiceSupervisor

__all__ = [
    'ServiceSupervisor', 'ConfigStore', 'LogCollector',
    'ServiceConfig', 'ServiceInstance', 'LogRecord', 'STATUS_RUNNING', 'STATUS_STOPPED',
    'WaypointError', 'ConfigLoadError', 'ConfigSaveError', 'ConfigNotFound', 'SpawnFailed',
]
