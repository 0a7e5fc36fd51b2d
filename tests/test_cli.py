"""Tests for wavecron.cli."""

import json
from unittest.mock import patch

import pytest
from rich.console import Console
from typer.testing import CliRunner

from wavecron.cli import commands
from wavecron.cli.commands import app
from wavecron.core.config import Config
from wavecron.core.store import JobStore

runner = CliRunner()

_PATCH_CONFIG = "wavecron.core.config.schema.Config.from_yaml"


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Tables would otherwise be squeezed to 80 columns."""
    monkeypatch.setattr(commands, "console", Console(width=200))


@pytest.fixture
def config(tmp_path):
    return Config(storage={"path": str(tmp_path / "jobs")})


@pytest.fixture
def store(config):
    return JobStore(config.storage_path)


def _invoke(config, *args):
    with patch(_PATCH_CONFIG, return_value=config):
        return runner.invoke(app, list(args))


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "daemon" in result.output
    assert "serve" in result.output
    assert "cron" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "wavecron v" in result.output


def test_status(config, store):
    store.create("a", "* * * * *")
    result = _invoke(config, "status")
    assert result.exit_code == 0
    assert "Jobs" in result.output
    assert str(config.storage_path) in result.output


# ── cron add ───────────────────────────────────────────────


def test_cron_add_command(config, store):
    result = _invoke(config, "cron", "add", "backup", "0 9 * * 1-5", "-c", "echo hi", "--cwd", "/tmp")
    assert result.exit_code == 0
    assert "Weekdays at 09:00" in result.output

    jobs = JobStore(config.storage_path).load_all()
    assert len(jobs) == 1
    job = jobs[0]
    assert job.name == "backup"
    assert job.enabled is True
    node = job.workflow_graph.nodes[0]
    assert node.id == "shell-1"
    assert node.data.command == "echo hi"
    assert node.data.working_directory == "/tmp"
    assert node.data.timeout == 300


def test_cron_add_graph_file(config, tmp_path):
    graph = {
        "nodes": [
            {"id": "a", "type": "shell-command", "data": {"command": "true"}},
            {"id": "b", "type": "shell-command", "data": {"command": "true"}},
        ],
        "edges": [{"source": "a", "target": "b"}],
    }
    f = tmp_path / "graph.json"
    f.write_text(json.dumps(graph))

    result = _invoke(config, "cron", "add", "pipe", "*/5 * * * *", "-g", str(f), "--disabled")
    assert result.exit_code == 0

    job = JobStore(config.storage_path).load_all()[0]
    assert job.enabled is False
    assert [n.id for n in job.workflow_graph.nodes] == ["a", "b"]
    assert len(job.workflow_graph.edges) == 1


def test_cron_add_invalid_schedule(config):
    result = _invoke(config, "cron", "add", "bad", "61 * * * *", "-c", "true")
    assert result.exit_code == 1
    assert "Invalid cron expression" in result.output
    assert JobStore(config.storage_path).load_all() == []


def test_cron_add_needs_exactly_one_source(config):
    result = _invoke(config, "cron", "add", "none", "* * * * *")
    assert result.exit_code == 1
    assert "exactly one" in result.output


def test_cron_add_bad_graph_file(config, tmp_path):
    f = tmp_path / "graph.json"
    f.write_text(json.dumps({"nodes": [], "edges": [{"source": "x", "target": "y"}]}))
    result = _invoke(config, "cron", "add", "g", "* * * * *", "-g", str(f))
    assert result.exit_code == 1
    assert "Invalid workflow graph" in result.output


# ── cron list / show / enable / remove ─────────────────────


def test_cron_list_empty(config):
    result = _invoke(config, "cron", "list")
    assert result.exit_code == 0
    assert "No cron jobs found" in result.output


def test_cron_list(config, store):
    job = store.create("nightly", "30 2 * * *")
    result = _invoke(config, "cron", "list")
    assert result.exit_code == 0
    assert job.id in result.output
    assert "nightly" in result.output
    assert "Daily at 02:30" in result.output


def test_cron_show(config, store):
    job = store.create("nightly", "30 2 * * *")
    result = _invoke(config, "cron", "show", job.id)
    assert result.exit_code == 0
    assert '"workflowGraph"' in result.output

    result = _invoke(config, "cron", "show", "nope")
    assert result.exit_code == 1


def test_cron_enable_disable(config, store):
    job = store.create("j", "* * * * *")

    result = _invoke(config, "cron", "disable", job.id)
    assert result.exit_code == 0
    assert JobStore(config.storage_path).load(job.id).enabled is False

    result = _invoke(config, "cron", "enable", job.id)
    assert result.exit_code == 0
    assert JobStore(config.storage_path).load(job.id).enabled is True

    assert _invoke(config, "cron", "enable", "nope").exit_code == 1


def test_cron_remove(config, store):
    job = store.create("j", "* * * * *")
    result = _invoke(config, "cron", "remove", job.id)
    assert result.exit_code == 0
    assert "Removed cron job" in result.output
    assert JobStore(config.storage_path).load(job.id) is None

    result = _invoke(config, "cron", "remove", job.id)
    assert result.exit_code == 1


# ── cron run / runs ────────────────────────────────────────


def test_cron_run_and_history(config, store):
    job = store.create(
        "echo",
        "* * * * *",
        workflow_graph={
            "nodes": [{"id": "say", "type": "shell-command", "data": {"command": "echo hello"}}]
        },
    )

    result = _invoke(config, "cron", "run", job.id)
    assert result.exit_code == 0
    assert "hello" in result.output
    assert "Run status: success" in result.output

    result = _invoke(config, "cron", "runs", job.id)
    assert result.exit_code == 0
    assert "success" in result.output
    assert len(JobStore(config.storage_path).list_runs(job.id)) == 1


def test_cron_run_missing_job(config):
    result = _invoke(config, "cron", "run", "nope")
    assert result.exit_code == 1
    assert "not found" in result.output


def test_cron_runs_empty(config, store):
    job = store.create("j", "* * * * *")
    result = _invoke(config, "cron", "runs", job.id)
    assert result.exit_code == 0
    assert "No runs recorded" in result.output


# ── schedule helpers ───────────────────────────────────────


def test_cron_validate():
    assert runner.invoke(app, ["cron", "validate", "*/15 * * * *"]).exit_code == 0
    result = runner.invoke(app, ["cron", "validate", "* * *"])
    assert result.exit_code == 1
    assert "invalid" in result.output


def test_cron_next():
    result = runner.invoke(app, ["cron", "next", "0 9 * * *"])
    assert result.exit_code == 0
    assert "Daily at 09:00" in result.output
    assert "next run at" in result.output


def test_cron_next_invalid():
    result = runner.invoke(app, ["cron", "next", "bogus"])
    assert result.exit_code == 1


@pytest.mark.parametrize("bad_id", ["", ".", ".."])
def test_cron_remove_path_like_id_keeps_store(config, store, bad_id):
    job = store.create("keep", "* * * * *")
    result = _invoke(config, "cron", "remove", bad_id)
    assert result.exit_code == 1
    assert "not found" in result.output
    assert JobStore(config.storage_path).load(job.id) is not None


def test_cron_run_help_mentions_disabled_jobs():
    result = runner.invoke(app, ["cron", "run", "--help"])
    assert result.exit_code == 0
    assert "disabled" in result.output
