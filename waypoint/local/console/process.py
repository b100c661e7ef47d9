import logging
from typing import List

from waypoint.local.supervisor import ServiceSupervisor
from waypoint.local.console.handler import (
    display_configs, display_instances, display_status, handle_add_command, handle_config_command,
    handle_kill_command, handle_logs_command, handle_start_command, print_help, toggle_verbose_logging,
)

log = logging.getLogger(__name__)


def execute_command(supervisor: ServiceSupervisor, command: str, args: List[str]) -> bool:
    """
    Executes a single command from the user.

    :param supervisor: The supervisor the console operates on.
    :param command: The main command string (e.g., 'start', 'logs').
    :param args: A list of arguments for the command.
    :return bool: True if the console should exit, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "add": lambda: handle_add_command(supervisor, args),
        "configs": lambda: display_configs(supervisor),
        "start": lambda: handle_start_command(supervisor, args),
        "kill": lambda: handle_kill_command(supervisor, args),
        "status": lambda: display_status(supervisor, args),
        "instances": lambda: display_instances(supervisor),
        "logs": lambda: handle_logs_command(supervisor, args),
        "config": lambda: handle_config_command(args),
        "verbose": toggle_verbose_logging,
        "help": print_help,
    }

    if command == "exit":
        return True

    if command in command_map:
        command_map[command]()
    else:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
    return False
