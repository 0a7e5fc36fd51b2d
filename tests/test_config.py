"""Tests for wavecron.core.config."""

from pathlib import Path

import pytest
import yaml

from wavecron.core.config import Config


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No stray config files or env from the machine running the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("WAVECRON_CONFIG", raising=False)


def test_defaults():
    cfg = Config()
    assert cfg.storage.path == "~/.wavecron/cron-jobs"
    assert cfg.storage.max_runs == 100
    assert cfg.scheduler.enabled is True
    assert cfg.scheduler.shutdown_timeout_s == 10.0
    assert cfg.shell.default_timeout_s == 300
    assert cfg.shell.extra_path == []
    assert cfg.api.port == 8400
    assert cfg.logging.level == "INFO"


def test_from_dict():
    cfg = Config(
        storage={"path": "/tmp/jobs", "max_runs": 5},
        shell={"extra_path": ["/opt/bin"]},
    )
    assert cfg.storage.max_runs == 5
    assert cfg.storage_path == Path("/tmp/jobs")
    assert cfg.shell.extra_path == ["/opt/bin"]


def test_storage_path_expands_home():
    cfg = Config(storage={"path": "~/jobs"})
    assert cfg.storage_path == Path.home() / "jobs"


def test_from_yaml_explicit_path(tmp_path):
    f = tmp_path / "custom.yaml"
    f.write_text(yaml.dump({"scheduler": {"shutdown_timeout_s": 3}, "api": {"port": 9000}}))
    cfg = Config.from_yaml(f)
    assert cfg.scheduler.shutdown_timeout_s == 3
    assert cfg.api.port == 9000


def test_from_yaml_missing_file_gives_defaults(tmp_path):
    cfg = Config.from_yaml(tmp_path / "nope.yaml")
    assert cfg.storage.max_runs == 100


def test_from_yaml_no_file_anywhere():
    assert Config.from_yaml().api.host == "127.0.0.1"


def test_from_yaml_empty_file(tmp_path):
    f = tmp_path / "empty.yaml"
    f.write_text("")
    assert Config.from_yaml(f).api.host == "127.0.0.1"


def test_from_yaml_rejects_non_mapping(tmp_path):
    f = tmp_path / "list.yaml"
    f.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        Config.from_yaml(f)


def test_from_yaml_env_path(tmp_path, monkeypatch):
    f = tmp_path / "other.yaml"
    f.write_text(yaml.dump({"storage": {"max_runs": 7}}))
    monkeypatch.setenv("WAVECRON_CONFIG", str(f))
    assert Config.from_yaml().storage.max_runs == 7


def test_from_yaml_lookup_order(tmp_path):
    (tmp_path / "config.yaml").write_text(yaml.dump({"api": {"port": 1}}))
    assert Config.from_yaml().api.port == 1

    (tmp_path / "wavecron.yaml").write_text(yaml.dump({"api": {"port": 2}}))
    assert Config.from_yaml().api.port == 2


def test_from_yaml_user_file(tmp_path):
    user_dir = tmp_path / "home" / ".wavecron"
    user_dir.mkdir(parents=True)
    (user_dir / "config.yaml").write_text(yaml.dump({"logging": {"level": "WARNING"}}))
    assert Config.from_yaml().logging.level == "WARNING"


def test_env_overrides_yaml(tmp_path, monkeypatch):
    f = tmp_path / "custom.yaml"
    f.write_text(yaml.dump({"logging": {"level": "INFO"}, "storage": {"max_runs": 7}}))
    monkeypatch.setenv("WAVECRON_LOGGING__LEVEL", "DEBUG")
    cfg = Config.from_yaml(f)
    assert cfg.logging.level == "DEBUG"
    assert cfg.storage.max_runs == 7
