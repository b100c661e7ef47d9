import json
import logging
from pathlib import Path

import pytest

from waypoint.local import app_globals
from waypoint.local.console import execute_command
from waypoint.local.supervisor import STATUS_STOPPED, ConfigStore, ServiceSupervisor
from tests.utils import PYTHON, emit_script, python_args, wait_for, write_script


def run(supervisor: ServiceSupervisor, command_line: str) -> bool:
    command, *args = command_line.split()
    return execute_command(supervisor, command, args)


def test_add_then_configs(supervisor: ServiceSupervisor, capsys) -> None:
    run(supervisor, "add web /usr/bin/web --port 80")
    run(supervisor, "configs")

    out = capsys.readouterr().out
    assert "Service 'web' configured for '/usr/bin/web'." in out
    assert "/usr/bin/web --port 80" in out
    assert supervisor.config_store.get("web").cmd_line_args == "--port 80"


def test_service_lifecycle(supervisor: ServiceSupervisor, echoer: str, capsys) -> None:
    run(supervisor, f"start {echoer}")
    (service_id,) = supervisor.instances()
    assert wait_for(lambda: supervisor.log_lines(service_id))

    run(supervisor, "instances")
    run(supervisor, "status")
    run(supervisor, f"logs {service_id}")
    run(supervisor, f"kill {service_id}")
    out = capsys.readouterr().out

    assert f"Service '{echoer}' started with ID {service_id}." in out
    assert f"{service_id} : {echoer}" in out
    assert "Status: RUNNING" in out
    assert "tick 0" in out
    assert f"Kill signal sent to {service_id}." in out
    assert wait_for(lambda: supervisor.status(service_id) == STATUS_STOPPED)


def test_start_errors_are_reported(supervisor: ServiceSupervisor, tmp_path: Path, capsys) -> None:
    supervisor.add_config(str(tmp_path / "missing"), "ghost")

    run(supervisor, "start nobody")
    run(supervisor, "start ghost")
    out = capsys.readouterr().out

    assert "Error: No service configuration named 'nobody'" in out
    assert "Error: Failed to start 'ghost'" in out
    assert supervisor.instances() == {}


def test_logs_follow_returns_when_service_exits(supervisor: ServiceSupervisor, tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(app_globals, "LOG_FOLLOW_POLL_INTERVAL", 0.01)
    script = write_script(tmp_path, "emit", emit_script(3, 0))
    supervisor.add_config(PYTHON, "emit", python_args(script))
    service_id = supervisor.start("emit")

    run(supervisor, f"logs {service_id} --follow")
    out = capsys.readouterr().out

    assert [line for line in out.splitlines() if line.startswith("out")] == ["out 0", "out 1", "out 2"]
    assert "Service stopped." in out


def test_unknown_ids(supervisor: ServiceSupervisor, capsys) -> None:
    run(supervisor, "logs nope")
    run(supervisor, "kill nope")
    run(supervisor, "status nope")
    out = capsys.readouterr().out

    assert "Unknown service ID: nope" in out
    assert "Could not kill nope" in out
    assert "nope: STOPPED" in out


def test_exit_and_unknown_command(supervisor: ServiceSupervisor, caplog) -> None:
    caplog.set_level(logging.INFO)

    assert run(supervisor, "exit") is True
    assert run(supervisor, "frobnicate") is False
    assert "Unknown command: 'frobnicate'" in caplog.text


def test_config_set(config_store: ConfigStore, isolated_overrides: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(app_globals, "MAX_EXITED_INSTANCES", 50)
    supervisor = ServiceSupervisor(config_store, echo_output=False)

    run(supervisor, "config set max_exited_instances 7")
    run(supervisor, "config set BASE_DIR /tmp")

    out = capsys.readouterr().out
    assert "Setting 'MAX_EXITED_INSTANCES' updated to '7'." in out
    assert "Error: Setting 'BASE_DIR' is not modifiable." in out
    assert app_globals.MAX_EXITED_INSTANCES == 7
    assert supervisor.max_exited_instances == 7
    assert json.loads(isolated_overrides.read_text())["MAX_EXITED_INSTANCES"] == 7


def test_config_set_instance_limit_to_none(config_store: ConfigStore, monkeypatch, capsys) -> None:
    monkeypatch.setattr(app_globals, "MAX_EXITED_INSTANCES", 50)
    supervisor = ServiceSupervisor(config_store, echo_output=False)

    run(supervisor, "config set MAX_EXITED_INSTANCES none")
    run(supervisor, "config set MAX_EXITED_INSTANCES lots")

    out = capsys.readouterr().out
    assert "Setting 'MAX_EXITED_INSTANCES' updated to 'None'." in out
    assert "Error: Could not convert value 'lots'" in out
    assert supervisor.max_exited_instances is None


@pytest.mark.parametrize("command", ["help", "config help", "config show"])
def test_help_screens(supervisor: ServiceSupervisor, command: str, capsys) -> None:
    assert run(supervisor, command) is False
    assert capsys.readouterr().out.strip()
