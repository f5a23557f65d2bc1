"""Tests for the command-line interface."""

import json

import pandas as pd
import pytest
from typer.testing import CliRunner

from z3d.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestCli:
    """Test each command end to end."""

    def test_init_config(self, workdir):
        result = runner.invoke(app, ["init-config"])

        assert result.exit_code == 0
        assert (workdir / "config.yaml").exists()

    def test_init_config_refuses_overwrite(self, workdir):
        (workdir / "config.yaml").write_text("project_name: keep\n")

        result = runner.invoke(app, ["init-config"])

        assert result.exit_code == 1
        assert (workdir / "config.yaml").read_text() == "project_name: keep\n"

    def test_optimize(self, workdir):
        """Default channels are allocated and written as JSON."""
        out = workdir / "allocation.json"

        result = runner.invoke(app, ["optimize", "--budget", "1000", "-o", str(out)])

        assert result.exit_code == 0
        payload = json.loads(out.read_text())
        assert [r["name"] for r in payload["results"]] == ["tv", "radio", "search"]

    def test_optimize_missing_channels_file(self, workdir):
        result = runner.invoke(app, ["optimize", "--channels", str(workdir / "nope.csv")])

        assert result.exit_code == 1

    def test_optimize_zero_budget(self):
        result = runner.invoke(app, ["optimize", "--budget", "0"])

        assert result.exit_code == 1

    def test_scenarios(self, workdir):
        out = workdir / "scenarios.csv"

        result = runner.invoke(app, ["scenarios", "-o", str(out)])

        assert result.exit_code == 0
        assert len(pd.read_csv(out)) == 5

    def test_simulate_market(self, workdir):
        out = workdir / "timeline.csv"

        result = runner.invoke(app, [
            "simulate-market", "--months", "2", "--new-units", "3",
            "--seed", "1", "-o", str(out),
        ])

        assert result.exit_code == 0
        df = pd.read_csv(out)
        assert list(df["period_index"]) == [1, 2]

    def test_simulate_market_zero_budget(self):
        result = runner.invoke(app, ["simulate-market", "--budget", "0", "--months", "1"])

        assert result.exit_code == 1

    def test_simulate_attitude(self, workdir):
        out = workdir / "trajectory.csv"

        result = runner.invoke(app, ["simulate-attitude", "-o", str(out)])

        assert result.exit_code == 0
        df = pd.read_csv(out)
        assert len(df) == 121
        assert df["energy"].iloc[0] == pytest.approx(0.03125)

    def test_bad_config_exits(self, workdir):
        (workdir / "broken.yaml").write_text("market: [unclosed\n")

        result = runner.invoke(app, ["optimize", "-c", str(workdir / "broken.yaml")])

        assert result.exit_code == 1
