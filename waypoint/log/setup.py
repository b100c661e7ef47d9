import logging
import sys
from typing import Optional

CONSOLE_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw service output."""

    def __init__(self) -> None:
        super().__init__(CONSOLE_FORMAT)

    def format(self, record):
        # Echoed service output is logged under 'proc.<display name>' by the log collector.
        if record.name.startswith('proc.'):
            return f"[{record.name[len('proc.'):]}] {record.getMessage()}"
        return super().format(record)


def _find_console_handler() -> Optional[logging.Handler]:
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler) and isinstance(handler.formatter, MainFormatter):
            return handler
    return None


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    Clears any previously configured handlers to prevent duplication and
    installs a single console handler writing to stdout.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)


def set_console_level(level: int) -> bool:
    """
    Changes the level of the console handler installed by `setup_logging`.

    :return: False if no console handler is installed.
    """
    handler = _find_console_handler()
    if handler is None:
        return False
    handler.setLevel(level)
    return True
