import sys
import shlex
import logging
import threading
import setproctitle

from waypoint.local import app_globals
from waypoint.log import setup_logging
import waypoint.local.console as console
from waypoint.local.supervisor import ConfigStore, ServiceSupervisor

log = logging.getLogger("console")

CONSOLE_LOCK = threading.Lock()


def run_interactive(supervisor: ServiceSupervisor) -> None:
    """Reads commands from stdin until 'exit', EOF or Ctrl+C."""
    print("--- Waypoint Service Console ---")
    print("Type 'help' for a list of commands.")
    print(f"{len(supervisor.configs())} service(s) configured.")

    while True:
        try:
            # The input prompt must be outside the lock to not block background threads
            command_line_str = input("> ")
            with CONSOLE_LOCK:
                try:
                    command_line = shlex.split(command_line_str)
                except ValueError as e:
                    print(f"Could not parse command: {e}")
                    continue
                if not command_line:
                    continue

                command, args = command_line[0].lower(), command_line[1:]
                log.debug(f"Received command: {command}, args: {args}")

                if console.execute_command(supervisor, command, args):
                    break

        except (KeyboardInterrupt, EOFError):
            with CONSOLE_LOCK:
                log.warning("Exiting console.")
                break
        except Exception as e:
            with CONSOLE_LOCK:
                log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)


def main() -> None:
    """The main entry point for the console application."""
    setproctitle.setproctitle(app_globals.PROCESS_TITLE)

    args = sys.argv[1:]
    if "--verbose" in args:
        app_globals.VERBOSE_LOGGING = True
        args.remove("--verbose")
    setup_logging(logging.DEBUG if app_globals.VERBOSE_LOGGING else logging.INFO)

    supervisor = ServiceSupervisor(ConfigStore())
    try:
        # Non-interactive mode for one-off commands
        if args:
            console.execute_command(supervisor, args[0].lower(), args[1:])
        else:
            run_interactive(supervisor)
    finally:
        supervisor.stop_all()


if __name__ == "__main__":
    main()
    print("Exiting Waypoint. See you next time!")
