import sys
import time
import shlex
import textwrap
from pathlib import Path
from typing import Callable

ECHO_LOOP = """
import time

i = 0
while True:
    print(f"tick {i}", flush=True)
    i += 1
    time.sleep(0.02)
"""

PRINT_ARGS = """
import sys

print(sys.argv[1:], flush=True)
"""


def emit_script(stdout_lines: int, stderr_lines: int) -> str:
    """A script that writes numbered lines to both streams, interleaved, then exits."""
    return f"""
import sys

for i in range(max({stdout_lines}, {stderr_lines})):
    if i < {stdout_lines}:
        print(f"out {{i}}", flush=True)
    if i < {stderr_lines}:
        print(f"err {{i}}", file=sys.stderr, flush=True)
"""


def write_script(directory: Path, name: str, body: str) -> Path:
    script = directory / f"{name}.py"
    script.write_text(textwrap.dedent(body))
    return script


def python_args(script: Path, *extra: str) -> str:
    """The argument string that runs `script` with the current interpreter."""
    return " ".join(shlex.quote(arg) for arg in (str(script),) + extra)


PYTHON = sys.executable


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Polls `predicate` until it returns True or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
