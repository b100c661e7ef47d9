import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from waypoint.local import app_globals
from .errors import ConfigLoadError, ConfigSaveError
from .models import ServiceConfig

log = logging.getLogger(__name__)


def _config_from_entry(entry: Dict) -> Optional[ServiceConfig]:
    """Builds a ServiceConfig from one decoded JSON entry, or None if it is malformed."""
    if not isinstance(entry, dict):
        return None
    path, display_name = entry.get("path"), entry.get("display_name")
    if not isinstance(path, str) or not isinstance(display_name, str):
        return None
    cmd_line_args = entry.get("cmd_line_args")
    if cmd_line_args is not None and not isinstance(cmd_line_args, str):
        return None
    return ServiceConfig(path=path, display_name=display_name, cmd_line_args=cmd_line_args)


def _entry_from_config(config: ServiceConfig) -> Dict[str, str]:
    entry = {"path": config.path, "display_name": config.display_name}
    if config.cmd_line_args is not None:
        entry["cmd_line_args"] = config.cmd_line_args
    return entry


class ConfigStore:
    """
    Persists and loads the set of named service configurations.

    Configurations are keyed by display name. The whole set is read once at
    construction and rewritten wholesale on every `add`.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        """
        :param path: The JSON file holding the configurations. Defaults to
            the `CONFIG_FILE_PATH` setting.
        """
        self.path = Path(path) if path is not None else Path(app_globals.CONFIG_FILE_PATH)
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._configs: Dict[str, ServiceConfig] = {
            config.display_name: config for config in sorted(self.load(), key=lambda c: c.display_name)
        }

    def _read_file(self) -> List[ServiceConfig]:
        if not self.path.exists():
            raise ConfigLoadError(f"'{self.path}' does not exist")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                entries = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, IOError) as e:
            raise ConfigLoadError(f"'{self.path}' could not be parsed: {e}") from e
        if not isinstance(entries, list):
            raise ConfigLoadError(f"'{self.path}' does not contain a list of service configurations")

        configs = []
        for entry in entries:
            config = _config_from_entry(entry)
            if config is None:
                log.warning(f"Skipping malformed service configuration entry in '{self.path}': {entry!r}")
                continue
            configs.append(config)
        return configs

    def _write_file(self, configs: Iterable[ServiceConfig]) -> None:
        entries = [_entry_from_config(c) for c in sorted(configs, key=lambda c: c.display_name)]
        temp_path = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(entries, f, indent=4)
            temp_path.replace(self.path)
        except (IOError, OSError) as e:
            raise ConfigSaveError(f"Failed to write '{self.path}': {e}") from e
        finally:
            temp_path.unlink(missing_ok=True)

    def load(self) -> Set[ServiceConfig]:
        """
        Reads the persisted configurations.

        A missing or unparsable file is not an error: it yields an empty set.

        :return: The set of configurations on disk.
        """
        try:
            configs = set(self._read_file())
        except ConfigLoadError as e:
            log.info(f"No service config loaded: {e}")
            return set()
        log.info(f"Loaded {len(configs)} service configuration(s) from '{self.path}'.")
        return configs

    def save(self, configs: Optional[Iterable[ServiceConfig]] = None) -> bool:
        """
        Overwrites the persisted file with the full configuration set.

        In-memory state is kept whether or not the write succeeds.

        :param configs: The configurations to write. Defaults to the current set.
        :return: True if the file was written.
        """
        with self._save_lock:
            if configs is None:
                configs = self.all().values()
            try:
                self._write_file(configs)
            except ConfigSaveError as e:
                log.error(f"Service configuration not saved: {e}")
                return False
        log.debug(f"Service configuration saved to '{self.path}'.")
        return True

    def add(self, path: str, display_name: str, cmd_line_args: Optional[str] = None) -> None:
        """
        Inserts or replaces the configuration named `display_name`, then saves.

        The executable path is not validated here; a bad path surfaces when
        the service is started.
        """
        config = ServiceConfig(path=path, display_name=display_name, cmd_line_args=cmd_line_args or None)
        with self._lock:
            previous = self._configs.get(display_name)
            self._configs[display_name] = config
        if previous is not None and previous != config:
            log.warning(f"Service configuration '{display_name}' replaced (was '{previous.path}').")
        else:
            log.info(f"Service configuration '{display_name}' added for '{path}'.")
        self.save()

    def get(self, display_name: str) -> Optional[ServiceConfig]:
        with self._lock:
            return self._configs.get(display_name)

    def all(self) -> Dict[str, ServiceConfig]:
        """Returns a snapshot of every configuration, keyed by display name."""
        with self._lock:
            return dict(self._configs)
