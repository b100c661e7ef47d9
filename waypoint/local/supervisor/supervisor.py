import time
import uuid
import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional

from waypoint.local import app_globals
from . import process_utils, shutdown
from .errors import ConfigNotFound, SpawnFailed
from .log_capture import LogCollector
from .models import STATUS_RUNNING, STATUS_STOPPED, LogRecord, ServiceInstance
from .persistence import ConfigStore

log = logging.getLogger(__name__)

_UNSET = object()


class ServiceSupervisor:
    """
    Launches configured services and keeps the registry of their instances.

    Construct one per application and hand it to whatever needs to start,
    kill or inspect services. Registry changes are serialized by a lock.
    Exited instances are noticed lazily by `status`, which also drops the
    oldest exited instances once more than `max_exited_instances` pile up.
    """

    def __init__(self, config_store: ConfigStore, max_exited_instances=_UNSET, echo_output: Optional[bool] = None) -> None:
        """
        :param config_store: Source of the launchable service configurations.
        :param max_exited_instances: How many exited instances stay queryable.
            None keeps all of them. Defaults to the `MAX_EXITED_INSTANCES` setting.
        :param echo_output: Mirror captured lines to the log. Defaults to the
            `ECHO_SERVICE_OUTPUT` setting.
        """
        self.config_store = config_store
        self._max_exited_instances = max_exited_instances
        self._echo_output = echo_output

        self._instances: Dict[str, ServiceInstance] = {}
        self._exited: Deque[str] = deque()
        self._lock = threading.RLock()

    @property
    def max_exited_instances(self) -> Optional[int]:
        if self._max_exited_instances is _UNSET:
            return app_globals.MAX_EXITED_INSTANCES
        return self._max_exited_instances

    @property
    def echo_output(self) -> bool:
        if self._echo_output is None:
            return app_globals.ECHO_SERVICE_OUTPUT
        return self._echo_output

    #* --- Configuration ---
    def configs(self) -> Dict[str, str]:
        """Returns the configured services as a mapping of display name to executable path."""
        return {name: config.path for name, config in self.config_store.all().items()}

    def add_config(self, path: str, display_name: str, cmd_line_args: Optional[str] = None) -> None:
        self.config_store.add(path, display_name, cmd_line_args)

    #* --- Lifecycle ---
    def start(self, display_name: str) -> str:
        """
        Starts a new instance of the service configured as `display_name`.

        :param display_name: The name of the service configuration.
        :return: The ID of the new instance.
        :raises ConfigNotFound: If no configuration has that name.
        :raises SpawnFailed: If the executable could not be launched or its
            output could not be captured.
        """
        config = self.config_store.get(display_name)
        if config is None:
            log.warning(f"Cannot start '{display_name}': no such service configuration.")
            raise ConfigNotFound(display_name)

        log.info(f"Starting service '{display_name}' from '{config.path}'...")
        try:
            process = process_utils.spawn_process(config)
        except (OSError, ValueError) as e:
            log.error(f"Failed to start service '{display_name}': {e}")
            raise SpawnFailed(display_name, config.path, str(e)) from e

        service_id = str(uuid.uuid4())
        log_record = LogRecord()
        collector = LogCollector(display_name, log_record, echo=self.echo_output)
        try:
            collector.attach(process)
        except RuntimeError as e:
            log.error(f"Could not capture output of service '{display_name}' (PID {process.pid}): {e}. Killing it.")
            process.kill()
            process.wait()
            raise SpawnFailed(display_name, config.path, str(e)) from e

        instance = ServiceInstance(service_id, display_name, process, log_record, collector)
        with self._lock:
            self._instances[service_id] = instance

        log.info(f"Service '{display_name}' started with ID {service_id} (PID {process.pid}).")
        return service_id

    def kill(self, service_id: str) -> bool:
        """
        Sends a kill signal to an instance.

        :return: True if the signal was delivered. This does not mean the
            process has exited yet; poll `status` for that.
        """
        instance = self.get_instance(service_id)
        if instance is None:
            log.debug(f"Kill requested for unknown service ID {service_id}.")
            return False
        return instance.kill()

    def status(self, service_id: str) -> str:
        """
        Polls the exit state of an instance without blocking.

        :return: STATUS_RUNNING or STATUS_STOPPED. Unknown IDs are stopped.
        """
        with self._lock:
            instance = self._instances.get(service_id)
            if instance is None:
                return STATUS_STOPPED
            status = instance.poll_status()
            if status == STATUS_STOPPED and service_id not in self._exited:
                log.info(f"Service '{instance.display_name}' ({service_id}) exited with code {instance.exit_code}.")
                self._exited.append(service_id)
                self._evict_exited()
            return status

    def _evict_exited(self) -> None:
        limit = self.max_exited_instances
        if limit is None:
            return
        while len(self._exited) > limit:
            evicted_id = self._exited.popleft()
            evicted = self._instances.pop(evicted_id, None)
            if evicted is not None:
                log.debug(f"Dropped exited service '{evicted.display_name}' ({evicted_id}) from the registry.")

    def stop_all(self, timeout: Optional[float] = None) -> None:
        """
        Shuts down every running instance and its child processes.

        Processes get SIGTERM first and are killed if they are still alive
        after `timeout` seconds (default: the `GRACEFUL_SHUTDOWN_TIMEOUT` setting).
        """
        if timeout is None:
            timeout = app_globals.GRACEFUL_SHUTDOWN_TIMEOUT

        running = [i for i in self.list_instances().values() if i.poll_status() == STATUS_RUNNING]
        if not running:
            log.info("No running services to stop.")
            return

        log.info(f"Initiating graceful shutdown for {len(running)} running service(s)...")
        start_time = time.time()
        shutdown.graceful_shutdown_sequence(running, timeout)

        for instance in running:
            if not instance.collector.join(app_globals.COLLECTOR_JOIN_TIMEOUT):
                log.warning(f"Log capture for '{instance.display_name}' ({instance.id}) is still running.")
            self.status(instance.id)
        log.info(f"Shutdown of {len(running)} service(s) completed in {time.time() - start_time:.2f} seconds.")

    #* --- Queries ---
    def get_instance(self, service_id: str) -> Optional[ServiceInstance]:
        with self._lock:
            return self._instances.get(service_id)

    def list_instances(self) -> Dict[str, ServiceInstance]:
        """Returns a snapshot of the registry, keyed by service ID."""
        with self._lock:
            return dict(self._instances)

    def instances(self) -> Dict[str, str]:
        """Returns the known instances as a mapping of service ID to display name."""
        return {service_id: instance.display_name for service_id, instance in self.list_instances().items()}

    def get_log_record(self, service_id: str) -> Optional[LogRecord]:
        instance = self.get_instance(service_id)
        return instance.log_record if instance is not None else None

    def log_lines(self, service_id: str) -> Optional[List[str]]:
        """Returns a copy of the lines captured for an instance, or None for unknown IDs."""
        log_record = self.get_log_record(service_id)
        return log_record.lines() if log_record is not None else None
