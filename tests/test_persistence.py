import json
import logging
from pathlib import Path

from waypoint.local.supervisor import ConfigStore, ServiceConfig


class TestLoad:
    def test_missing_file_is_empty(self, config_path: Path, caplog) -> None:
        caplog.set_level(logging.INFO)
        store = ConfigStore(config_path)

        assert store.load() == set()
        assert store.all() == {}
        assert "No service config loaded" in caplog.text

    def test_unparsable_file_is_empty(self, config_path: Path) -> None:
        config_path.write_text("{not json")
        assert ConfigStore(config_path).all() == {}

    def test_non_list_file_is_empty(self, config_path: Path) -> None:
        config_path.write_text(json.dumps({"path": "/bin/true", "display_name": "t"}))
        assert ConfigStore(config_path).load() == set()

    def test_malformed_entries_are_skipped(self, config_path: Path, caplog) -> None:
        config_path.write_text(json.dumps([
            {"path": "/bin/true", "display_name": "ok"},
            {"path": "/bin/false"},
            "garbage",
            {"path": "/bin/echo", "display_name": "bad-args", "cmd_line_args": ["a", "b"]},
        ]))

        configs = ConfigStore(config_path).load()

        assert configs == {ServiceConfig("/bin/true", "ok")}
        assert "Skipping malformed service configuration entry" in caplog.text


class TestAdd:
    def test_round_trip(self, config_store: ConfigStore, config_path: Path) -> None:
        config_store.add("/bin/echo_loop", "echoer")

        assert ConfigStore(config_path).load() == {ServiceConfig("/bin/echo_loop", "echoer")}

    def test_args_round_trip(self, config_store: ConfigStore, config_path: Path) -> None:
        config_store.add("/usr/bin/env", "env", "-i 'A=1 2'")

        assert ConfigStore(config_path).load() == {ServiceConfig("/usr/bin/env", "env", "-i 'A=1 2'")}

    def test_file_format(self, config_store: ConfigStore, config_path: Path) -> None:
        config_store.add("/b", "second")
        config_store.add("/a", "first", "--flag")

        assert json.loads(config_path.read_text()) == [
            {"path": "/a", "display_name": "first", "cmd_line_args": "--flag"},
            {"path": "/b", "display_name": "second"},
        ]

    def test_same_name_overwrites(self, config_store: ConfigStore, config_path: Path, caplog) -> None:
        config_store.add("/old", "svc")
        config_store.add("/new", "svc")

        assert config_store.all() == {"svc": ServiceConfig("/new", "svc")}
        assert ConfigStore(config_path).load() == {ServiceConfig("/new", "svc")}
        assert "replaced" in caplog.text

    def test_path_is_not_validated(self, config_store: ConfigStore) -> None:
        config_store.add("/definitely/not/here", "ghost")
        assert config_store.get("ghost") == ServiceConfig("/definitely/not/here", "ghost")

    def test_save_failure_keeps_memory(self, tmp_path: Path, caplog) -> None:
        unwritable = tmp_path / "a-directory"
        unwritable.mkdir()
        store = ConfigStore(unwritable)

        store.add("/bin/true", "t")

        assert store.get("t") == ServiceConfig("/bin/true", "t")
        assert store.save() is False
        assert "Service configuration not saved" in caplog.text


def test_all_returns_snapshot(config_store: ConfigStore) -> None:
    config_store.add("/bin/true", "t")
    snapshot = config_store.all()
    snapshot.clear()

    assert "t" in config_store.all()
