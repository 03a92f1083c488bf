"""Unit tests for the CLI app."""

import json

import pytest
from typer.testing import CliRunner

from tests.factories import NodeFactory, WorkflowFactory, as_loom, poller_plan
from weaver import loom
from weaver.cli.main import app


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


class TestMainApp:
    """Test main CLI app registration."""

    def test_app_name(self):
        assert app.info.name == "weaver"

    def test_all_commands_registered(self, runner):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("chat", "check", "fmt", "version"):
            assert command in result.stdout

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestCheckCommand:
    """`weaver check`."""

    def test_valid_workflow(self, runner, tmp_path):
        path = tmp_path / "workflow.json"
        path.write_text(json.dumps(poller_plan()["workflow"]))

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 0
        assert "Status poller" in result.stdout
        assert "2 nodes" in result.stdout

    def test_plan_in_loom(self, runner, tmp_path):
        path = tmp_path / "plan.loom"
        path.write_text(as_loom(poller_plan()))

        result = runner.invoke(app, ["check", str(path), "--show"])

        assert result.exit_code == 0
        assert '"typeVersion"' in result.stdout

    def test_invalid_workflow(self, runner, tmp_path):
        path = tmp_path / "workflow.json"
        path.write_text(json.dumps(WorkflowFactory(nodes=[])))

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "nodes" in result.stdout

    def test_node_without_type(self, runner, tmp_path):
        path = tmp_path / "workflow.json"
        path.write_text(json.dumps(WorkflowFactory(nodes=[NodeFactory(name="Start", type="")])))

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / "nope.json")])

        assert result.exit_code == 1
        assert "File not found" in result.stdout

    def test_bad_json(self, runner, tmp_path):
        path = tmp_path / "workflow.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.stdout


class TestFmtCommand:
    """`weaver fmt`."""

    def test_writes_loom(self, runner, tmp_path):
        source = tmp_path / "plan.json"
        source.write_text(json.dumps(poller_plan()))
        target = tmp_path / "plan.loom"

        result = runner.invoke(app, ["fmt", str(source), "-o", str(target)])

        assert result.exit_code == 0
        parsed = loom.parse(target.read_text())
        assert parsed.success
        assert parsed.data["title"] == "Status poller"
        assert parsed.data["workflow"]["nodes"][1]["type"] == "n8n-nodes-base.httpRequest"

    def test_prints_loom(self, runner, tmp_path):
        source = tmp_path / "plan.json"
        source.write_text(json.dumps(poller_plan()))

        result = runner.invoke(app, ["fmt", str(source)])

        assert result.exit_code == 0
        assert "title: Status poller" in result.stdout
