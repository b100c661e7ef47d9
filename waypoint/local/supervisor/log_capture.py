import queue
import logging
import threading
from typing import IO, List, Optional, Tuple

from .models import LogRecord

log = logging.getLogger(__name__)

# Posted by a reader once its stream is exhausted.
_END_OF_STREAM = None


class LogCollector:
    """
    Drains a process's stdout and stderr into one LogRecord.

    Each stream gets a reader thread doing blocking line reads. Readers
    hand completed lines to a single aggregator thread over a queue, and
    only the aggregator appends to the record. Line order within one
    stream is preserved; the interleave between the two streams is
    whatever order the lines reach the queue.
    """

    def __init__(self, name: str, log_record: LogRecord, echo: bool = False) -> None:
        """
        :param name: The display name of the service, used for thread and logger names.
        :param log_record: The record that receives every captured line.
        :param echo: If True, also log each line to the 'proc.<name>' logger.
        """
        self.name = name
        self.log_record = log_record
        self.echo = echo
        self._lines: "queue.Queue[Optional[Tuple[str, str]]]" = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._open_streams = 0

    def attach(self, process) -> None:
        """
        Starts capturing the output of a process spawned with piped stdout/stderr.

        :param process: A `subprocess.Popen` (or any object with `stdout`/`stderr` pipes).
        """
        streams = [(stream_name, pipe) for stream_name, pipe in (("stdout", process.stdout), ("stderr", process.stderr)) if pipe]
        self._open_streams = len(streams)

        aggregator = threading.Thread(target=self._aggregate, daemon=True, name=f"LogCollector-{self.name}")
        self._threads.append(aggregator)
        for stream_name, pipe in streams:
            self._threads.append(threading.Thread(
                target=self._read_pipe,
                args=(pipe, stream_name),
                daemon=True,
                name=f"LogCollector-{self.name}-{stream_name}",
            ))

        for thread in self._threads:
            thread.start()

    def _read_pipe(self, pipe: IO[bytes], stream_name: str) -> None:
        """Target function for reader threads. An empty read means the stream is closed."""
        try:
            for line_bytes in iter(pipe.readline, b""):
                self._lines.put((stream_name, line_bytes.decode("utf-8", errors="replace")))
        except (OSError, ValueError) as e:
            log.error(f"Reading {stream_name} of service '{self.name}' failed: {e}")
        finally:
            try:
                pipe.close()
            except OSError as e:
                log.debug(f"Closing {stream_name} of service '{self.name}' failed: {e}")
            self._lines.put(_END_OF_STREAM)
            log.debug(f"Capture of {stream_name} for service '{self.name}' finished.")

    def _aggregate(self) -> None:
        """Target function for the aggregator thread. Sole writer of the log record."""
        proc_logger = logging.getLogger(f"proc.{self.name}")
        remaining = self._open_streams
        while remaining:
            item = self._lines.get()
            if item is _END_OF_STREAM:
                remaining -= 1
                continue
            stream_name, line = item
            self.log_record.append(line)
            if self.echo:
                proc_logger.log(logging.INFO if stream_name == "stdout" else logging.ERROR, line.rstrip("\r\n"))

    def is_alive(self) -> bool:
        """True while any capture thread is still running."""
        return any(thread.is_alive() for thread in self._threads)

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for all capture threads to finish.

        :param timeout: Seconds to wait for each thread.
        :return: True if every thread finished.
        """
        for thread in self._threads:
            thread.join(timeout)
        return not self.is_alive()
