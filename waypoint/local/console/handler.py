import time
import shlex
import logging
from datetime import datetime
from typing import List

from waypoint.local import app_globals
from waypoint.log import set_console_level
from waypoint.local.supervisor import STATUS_RUNNING, ServiceSupervisor, WaypointError
from waypoint.local.supervisor.process_utils import get_process_usage

log = logging.getLogger(__name__)


#* --- Service configuration ---
def handle_add_command(supervisor: ServiceSupervisor, args: List[str]) -> None:
    """Handles 'add <name> <path> [args...]'."""
    if len(args) < 2:
        print("Usage: add <name> <path> [args...]")
        return
    name, path, cmd_line_args = args[0], args[1], shlex.join(args[2:]) or None
    supervisor.add_config(path, name, cmd_line_args)
    print(f"Service '{name}' configured for '{path}'.")


def display_configs(supervisor: ServiceSupervisor) -> None:
    configs = supervisor.config_store.all()
    if not configs:
        print("\nNo services configured. Use 'add <name> <path>' to add one.\n")
        return

    print("\n--- Configured Services ---")
    for name, config in sorted(configs.items()):
        args = f" {config.cmd_line_args}" if config.cmd_line_args else ""
        print(f"  - {name:<24} : {config.path}{args}")
    print("-" * 27 + "\n")


#* --- Service instances ---
def handle_start_command(supervisor: ServiceSupervisor, args: List[str]) -> None:
    """Handles 'start <name>'."""
    if not args:
        print("Usage: start <name>")
        return
    name = " ".join(args)
    try:
        service_id = supervisor.start(name)
    except WaypointError as e:
        print(f"Error: {e}")
        return
    print(f"Service '{name}' started with ID {service_id}.")


def handle_kill_command(supervisor: ServiceSupervisor, args: List[str]) -> None:
    """Handles 'kill <id>'."""
    if not args:
        print("Usage: kill <id>")
        return
    if supervisor.kill(args[0]):
        print(f"Kill signal sent to {args[0]}.")
    else:
        print(f"Could not kill {args[0]} (unknown ID or already stopped).")


def display_status(supervisor: ServiceSupervisor, args: List[str]) -> None:
    """Shows the status of one instance, or of all instances with their resource usage."""
    if args:
        print(f"{args[0]}: {supervisor.status(args[0]).upper()}")
        return

    instances = supervisor.list_instances()
    if not instances:
        print("\nNo services have been started.\n")
        return

    print("\n--- Service Status ---")
    total_cpu = 0.0
    total_mem = 0.0
    for service_id, instance in instances.items():
        status = supervisor.status(service_id)
        started = datetime.fromtimestamp(instance.started_at).strftime('%H:%M:%S')
        line = f"  - {instance.display_name:<20} : {service_id} | PID {instance.pid:<8} | Started {started} | Status: {status.upper()}"
        usage = get_process_usage(instance.pid) if status == STATUS_RUNNING else None
        if usage:
            line += f" | CPU: {usage['cpu_percent']:.1f}% | MEM: {usage['memory_mb']:.1f} MB"
            total_cpu += usage['cpu_percent']
            total_mem += usage['memory_mb']
        elif instance.exit_code is not None:
            line += f" | Exit code: {instance.exit_code}"
        print(line)

    print(f"\nTOTAL CPU: {total_cpu:.1f}%  |  TOTAL MEMORY: {total_mem:.1f} MB")
    print("-" * 22 + "\n")


def display_instances(supervisor: ServiceSupervisor) -> None:
    instances = supervisor.instances()
    if not instances:
        print("\nNo services have been started.\n")
        return
    print("\n--- Service Instances ---")
    for service_id, name in instances.items():
        print(f"  - {service_id} : {name}")
    print("-" * 25 + "\n")


def handle_logs_command(supervisor: ServiceSupervisor, args: List[str]) -> None:
    """
    Handles 'logs <id> [--follow]'.
    With --follow, keeps printing new lines until the service stops or Ctrl+C is pressed.
    """
    follow = "--follow" in args
    ids = [arg for arg in args if arg != "--follow"]
    if not ids:
        print("Usage: logs <id> [--follow]")
        return

    service_id = ids[0]
    log_record = supervisor.get_log_record(service_id)
    if log_record is None:
        print(f"Unknown service ID: {service_id}")
        return

    lines = log_record.lines()
    for line in lines:
        print(line.rstrip("\r\n"))
    if not follow:
        return

    print("\n--- Now following new log lines (Press Ctrl+C to stop) ---\n")
    seen = len(lines)
    try:
        while True:
            new_lines = log_record.lines_since(seen)
            for line in new_lines:
                print(line.rstrip("\r\n"))
            seen += len(new_lines)
            if not new_lines and supervisor.status(service_id) != STATUS_RUNNING:
                instance = supervisor.get_instance(service_id)
                if instance is None or not instance.collector.is_alive():
                    for line in log_record.lines_since(seen):
                        print(line.rstrip("\r\n"))
                    print("\n--- Service stopped. ---")
                    break
            time.sleep(app_globals.LOG_FOLLOW_POLL_INTERVAL)
    except KeyboardInterrupt:
        print("\n--- Log following stopped. Returning to console. ---")


#* --- Console settings ---
def _config_show() -> None:
    print("\n--- Current Configuration ---")
    for key, value in app_globals.modifiable_settings().items():
        print(f"  {key} = {value}")
    print("---")
    print("Use 'config set <KEY> <VALUE>' to change a setting.")
    print("Changes apply to services started afterwards.")
    print("-----------------------------\n")


def _config_set(args: List[str]) -> None:
    if len(args) < 2:
        print("Usage: config set <SETTING_NAME> <VALUE>")
        return
    key, value_str = args[0].upper(), " ".join(args[1:])
    success, message = app_globals.update_setting(key, value_str)
    print(message if success else f"Error: {message}")


def _config_help() -> None:
    print("\nConfig Command Help:")
    print("  config show                - Display all modifiable settings.")
    print("  config set KEY VALUE       - Change a setting and persist it.")
    print("  config help                - Show this help message.")


def handle_config_command(args: List[str]) -> None:
    """
    Handles all sub-commands for the 'config' command.

    :param args: A list of string arguments following the 'config' command.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")


def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    app_globals.VERBOSE_LOGGING = not app_globals.VERBOSE_LOGGING
    new_level = logging.DEBUG if app_globals.VERBOSE_LOGGING else logging.INFO

    status = "ON" if app_globals.VERBOSE_LOGGING else "OFF"
    if set_console_level(new_level):
        print(f"Verbose console logging is now {status}.")
        log.debug("Debug logging test: This message should only appear when verbose is ON.")
    else:
        print("Could not find console handler to modify level.")


def print_help() -> None:
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  add <name> <path> [args]  - Add or replace a service configuration.")
    print("  configs                   - List the configured services.")
    print("  start <name>              - Start a new instance of a configured service.")
    print("  kill <id>                 - Kill a running service instance.")
    print("  status [id]               - Show the status of one or all service instances.")
    print("  instances                 - List all known service instances.")
    print("  logs <id> [--follow]      - Print the captured output of an instance.")
    print("  config <cmd>              - Manage settings. Use 'config help' for more details.")
    print("  verbose                   - Toggle detailed DEBUG log output in the console.")
    print("  exit                      - Stop all services and exit the console.")
    print()
