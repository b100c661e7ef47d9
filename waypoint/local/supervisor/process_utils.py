import sys
import shlex
import psutil
import logging
import subprocess
from typing import Any, Dict, List, Optional

from .models import ServiceConfig

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def get_process_usage(pid: int) -> Optional[Dict[str, Any]]:
    """
    Returns CPU, memory and status figures for a process.

    :param pid: The process ID.
    :return: A dict with 'status', 'cpu_percent' and 'memory_mb', or None if the process is gone.
    """
    try:
        proc = psutil.Process(pid)
        return {
            "status": proc.status(),
            "cpu_percent": proc.cpu_percent(interval=0.1),
            "memory_mb": proc.memory_info().rss / 1024 / 1024,
        }
    except psutil.NoSuchProcess:
        return None
    except psutil.AccessDenied:
        log.debug(f"Access denied reading usage of PID {pid}.")
        return None


def collect_process_tree(pids: List[int]) -> List[psutil.Process]:
    """Returns psutil handles for the given PIDs and all of their children."""
    procs: Dict[int, psutil.Process] = {}
    for pid in pids:
        try:
            parent = psutil.Process(pid)
            procs[parent.pid] = parent
            for child in parent.children(recursive=True):
                procs[child.pid] = child
        except psutil.NoSuchProcess:
            log.debug(f"Process {pid} no longer exists, skipping.")
            continue
    return list(procs.values())


#* --- Process Creation ---
def _get_popen_creation_flags() -> Dict[str, Any]:
    """Returns platform-specific keyword arguments for subprocess.Popen."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}


def build_command(config: ServiceConfig) -> List[str]:
    """
    Returns the argument list used to launch a service.

    :raises ValueError: If the argument string cannot be split (e.g. unbalanced quotes).
    """
    args = [config.path]
    if config.cmd_line_args:
        args.extend(shlex.split(config.cmd_line_args, posix=sys.platform != "win32"))
    return args


def spawn_process(config: ServiceConfig) -> subprocess.Popen:
    """
    Launches a configured service with its stdout and stderr piped.

    :raises OSError: If the executable is missing, not executable or the spawn fails.
    :raises ValueError: If the configured argument string is malformed.
    """
    args = build_command(config)
    log.debug(f"Spawning {args} for service '{config.display_name}'.")
    return subprocess.Popen(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        **_get_popen_creation_flags()
    )
