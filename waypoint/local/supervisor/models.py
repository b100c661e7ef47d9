import time
import logging
import threading
import subprocess
from collections import namedtuple
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .log_capture import LogCollector

log = logging.getLogger(__name__)

STATUS_RUNNING = "running"
STATUS_STOPPED = "stopped"

ServiceConfig = namedtuple('ServiceConfig', ['path', 'display_name', 'cmd_line_args'], defaults=(None,))


class LogRecord:
    """
    The ordered, append-only capture of one instance's output.

    Lines are appended by the instance's log collector and read by any
    number of callers. Readers always get a snapshot copy, so they never
    see a line that is only partly appended.
    """

    def __init__(self) -> None:
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    def lines(self) -> List[str]:
        """Returns a copy of every line captured so far."""
        with self._lock:
            return list(self._lines)

    def lines_since(self, index: int) -> List[str]:
        """Returns a copy of the lines captured after the first `index` lines."""
        with self._lock:
            return self._lines[index:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)


class ServiceInstance:
    """
    One invocation of a configured service.

    The instance is the only owner of its process handle. Collaborators
    signal and query the process through `kill` and `poll_status`.
    """

    def __init__(
        self,
        service_id: str,
        display_name: str,
        process: subprocess.Popen,
        log_record: LogRecord,
        collector: "LogCollector",
    ) -> None:
        self.id = service_id
        self.display_name = display_name
        self.log_record = log_record
        self.collector = collector
        self.started_at = time.time()
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def exit_code(self) -> Optional[int]:
        """The process return code, or None while it has not been observed to exit."""
        return self._process.returncode

    def poll_status(self) -> str:
        """Non-blocking check of the process's exit state."""
        if self._process.poll() is None:
            return STATUS_RUNNING
        return STATUS_STOPPED

    def kill(self) -> bool:
        """
        Sends a kill signal to the process.

        :return: True if the signal was delivered, False if the process had
            already exited or the OS refused the signal.
        """
        if self._process.poll() is not None:
            log.debug(f"Service '{self.display_name}' ({self.id}) already exited with code {self._process.returncode}.")
            return False
        try:
            self._process.kill()
        except OSError as e:
            log.error(f"Failed to kill service '{self.display_name}' ({self.id}, PID {self.pid}): {e}")
            return False
        log.info(f"Kill signal sent to service '{self.display_name}' ({self.id}, PID {self.pid}).")
        return True

    def reap(self, timeout: float) -> Optional[int]:
        """Waits up to `timeout` seconds for the process to exit and returns its code."""
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            log.warning(f"Service '{self.display_name}' (PID {self.pid}) did not exit within {timeout}s.")
            return None

    def __repr__(self) -> str:
        return f"<ServiceInstance {self.display_name!r} id={self.id} pid={self.pid}>"
