import time
import psutil
import logging
from typing import TYPE_CHECKING, List

from . import process_utils

if TYPE_CHECKING:
    from .models import ServiceInstance

log = logging.getLogger(__name__)


def _terminate_processes(processes: List[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping forceful kill.")
            continue


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


def graceful_shutdown_sequence(instances: List["ServiceInstance"], timeout: float) -> None:
    """
    Terminates the given service instances and their descendants, waits for
    them and kills any stragglers.

    The instances' own processes are reaped through their Popen handles so
    their exit codes survive. psutil only waits on the descendants, which
    are not our children.

    :param instances: The running instances to shut down.
    :param timeout: Seconds to wait after SIGTERM before force-killing.
    """
    if not instances:
        return

    direct_pids = {instance.pid for instance in instances}
    processes = process_utils.collect_process_tree(list(direct_pids))
    descendants = [proc for proc in processes if proc.pid not in direct_pids]

    _terminate_processes(processes)
    deadline = time.monotonic() + timeout

    stubborn = [instance for instance in instances if instance.reap(_remaining(deadline)) is None]
    try:
        _, alive = psutil.wait_procs(descendants, timeout=_remaining(deadline))
    except psutil.NoSuchProcess:
        alive = []

    if stubborn:
        log.warning(f"{len(stubborn)} services did not terminate gracefully. Forcing shutdown...")
        for instance in stubborn:
            instance.kill()
    _forceful_kill(alive)

    for instance in stubborn:
        instance.reap(timeout)
    if alive:
        psutil.wait_procs(alive, timeout=timeout)
