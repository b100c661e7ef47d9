import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Tuple

import waypoint.settings as default_settings

log = logging.getLogger(__name__)

# Settings whose values need more than a conversion to the type of their default.
SETTING_PARSERS = {
    "MAX_EXITED_INSTANCES": default_settings.parse_instance_limit,
}


class MergedSettings:
    """
    Merges the default settings with JSON overrides.

    This class provides a unified, attribute-based access point for all
    configuration. It follows a clear precedence:
    1. Base values from `settings.py`.
    2. Overrides from `.env` file (handled by `python-dotenv` in settings.py).
    3. Overrides from the overrides JSON file for settings in `MODIFIABLE_SETTINGS`.
    """

    def __init__(self) -> None:
        """Initializes the settings object by loading defaults and overrides."""
        self.OVERRIDES_JSON_PATH: Path = default_settings.OVERRIDES_JSON_PATH
        self._lock = threading.Lock()

        self._load_defaults()
        self._load_overrides()

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings.py module as defaults."""
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def _load_overrides(self) -> None:
        """
        Loads and applies settings from the overrides JSON file.

        Only keys listed in `MODIFIABLE_SETTINGS` are applied.
        """
        if not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)

            log.info(f"Loading runtime configuration overrides from {self.OVERRIDES_JSON_PATH}")
            for key, value in overrides.items():
                if not hasattr(self, key):
                    log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                    continue
                if key not in self.MODIFIABLE_SETTINGS:
                    log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                    continue

                if key in SETTING_PARSERS:
                    try:
                        value = SETTING_PARSERS[key](value)
                    except ValueError as e:
                        log.error(f"Invalid override for '{key}': {e}. Ignoring.")
                        continue

                original_value = getattr(self, key)
                setattr(self, key, Path(value) if isinstance(original_value, Path) else value)
                log.debug(f"Overridden setting: {key} = {value}")
        except (json.JSONDecodeError, AttributeError, IOError) as e:
            log.error(f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}")

    def get(self, item: str, default: Any = None) -> Any:
        """Provides dictionary-like access to settings with a default value."""
        return getattr(self, item, default)

    def modifiable_settings(self) -> Dict[str, Any]:
        """Returns the current values of every modifiable setting."""
        return {key: getattr(self, key, None) for key in sorted(self.MODIFIABLE_SETTINGS)}

    def update_setting(self, key: str, value: Any) -> Tuple[bool, str]:
        """
        Thread-safe method to update a modifiable setting and persist it.

        The new value goes through the setting's parser if it has one,
        otherwise it is coerced to the type of the current value.

        :param key: The name of the setting.
        :param value: The new value, usually a string typed by the user.
        :return: A tuple of (success, message).
        """
        with self._lock:
            if key not in self.MODIFIABLE_SETTINGS:
                message = f"Setting '{key}' is not modifiable."
                log.warning(f"Rejected config update: {message}")
                return False, message

            try:
                original_value = getattr(self, key, None)
                if key in SETTING_PARSERS:
                    new_value = SETTING_PARSERS[key](value)
                elif isinstance(original_value, bool):
                    new_value = str(value).lower() in ('true', '1', 't', 'yes', 'y')
                elif original_value is not None:
                    new_value = type(original_value)(value)
                else:
                    new_value = value
            except (ValueError, TypeError) as e:
                message = f"Could not convert value '{value}' for key '{key}'. Error: {e}"
                log.error(f"Config update failed: {message}")
                return False, message

            setattr(self, key, new_value)
            self.save_overrides(self.modifiable_settings())
            message = f"Setting '{key}' updated to '{new_value}'."
            log.info(message)
            return True, message

    def save_overrides(self, overrides_to_save: Dict[str, Any]) -> None:
        """
        Saves the provided dictionary of settings to the overrides JSON file.

        Keys not present in `MODIFIABLE_SETTINGS` are filtered out.

        :param overrides_to_save: A dictionary of settings to persist.
        """
        filtered_overrides = {
            key: value
            for key, value in overrides_to_save.items()
            if key in self.MODIFIABLE_SETTINGS
        }

        if not filtered_overrides:
            log.warning("No modifiable settings provided to save.")
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('w') as f:
                json.dump(filtered_overrides, f, indent=4)
            log.info(f"Configuration overrides saved to {self.OVERRIDES_JSON_PATH}")
        except IOError as e:
            log.error(f"Failed to write to overrides file '{self.OVERRIDES_JSON_PATH}': {e}")


# A single instance to be imported by other modules
app_globals = MergedSettings()
