from pathlib import Path
from typing import Iterator

import pytest

from waypoint.local import app_globals
from waypoint.local.supervisor import ConfigStore, ServiceSupervisor
from tests.utils import ECHO_LOOP, PYTHON, python_args, write_script


@pytest.fixture(autouse=True)
def isolated_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keeps 'config set' from writing next to the test run."""
    overrides = tmp_path / "overrides.json"
    monkeypatch.setattr(app_globals, "OVERRIDES_JSON_PATH", overrides)
    return overrides


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "services.json"


@pytest.fixture()
def config_store(config_path: Path) -> ConfigStore:
    return ConfigStore(config_path)


@pytest.fixture()
def supervisor(config_store: ConfigStore) -> Iterator[ServiceSupervisor]:
    sup = ServiceSupervisor(config_store, max_exited_instances=None, echo_output=False)
    yield sup
    sup.stop_all(timeout=2)


@pytest.fixture()
def echoer(tmp_path: Path, supervisor: ServiceSupervisor) -> str:
    """Configures a service that prints a line every 20ms until killed."""
    script = write_script(tmp_path, "echo_loop", ECHO_LOOP)
    supervisor.add_config(PYTHON, "echoer", python_args(script))
    return "echoer"
