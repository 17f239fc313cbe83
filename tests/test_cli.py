# Copyright (c) Syntropy Systems
"""Tests for the fitsim CLI."""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING

import pytest
from conftest import stub_fit, stub_generate
from typer.testing import CliRunner

from fitsim.cli.main import app
from fitsim.engine import SimulationEngine
from fitsim.models.state import SimulationState

if TYPE_CHECKING:
    from pathlib import Path

    from fitsim.config import StudyConfig
    from fitsim.engine import ConditionCallback

runner = CliRunner()


@pytest.fixture
def stub_engine(monkeypatch: pytest.MonkeyPatch) -> None:
    """Replace the semopy-backed engine with fast stubs."""

    def create_engine(
        config: StudyConfig,
        *,
        state_path: Path | None = None,
        on_condition: ConditionCallback | None = None,
    ) -> SimulationEngine:
        return SimulationEngine(
            stub_generate,
            stub_fit,
            base_seed=config.base_seed,
            max_retries=config.max_retries,
            state_path=state_path,
            on_condition=on_condition,
        )

    monkeypatch.setattr("fitsim.cli.run.create_engine", create_engine)


class TestInit:
    """Tests for fitsim init."""

    def test_init(self, temp_dir: Path) -> None:
        """Test init creates the study directory and config."""
        result = runner.invoke(app, ["init", str(temp_dir)])

        assert result.exit_code == 0
        assert "Initialized fitsim study" in result.output
        assert (temp_dir / ".fitsim" / "config.yaml").exists()

    def test_init_twice(self, temp_dir: Path) -> None:
        """Test init leaves an existing study alone."""
        _ = runner.invoke(app, ["init", str(temp_dir)])
        result = runner.invoke(app, ["init", str(temp_dir)])

        assert result.exit_code == 0
        assert "Already initialized" in result.output


class TestRun:
    """Tests for fitsim run."""

    def test_no_project(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test run outside a study fails."""
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir))
        result = runner.invoke(app, ["run"])

        assert result.exit_code == 1
        assert "fitsim init" in result.output

    def test_dry_run(self, fitsim_project: Path) -> None:
        """Test the grid is shown without running anything."""
        result = runner.invoke(app, ["run", "--dry-run"])

        assert result.exit_code == 0
        assert "4 conditions" in result.output
        assert "Dry run" in result.output
        assert not (fitsim_project / ".fitsim" / "state.json").exists()

    def test_run(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test a full run saves state and results."""
        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        assert "4/4" in result.output
        assert "Results written" in result.output

        state = SimulationState.load(fitsim_project / ".fitsim" / "state.json")
        assert state.progress == (4, 4)
        assert state.settings.replications == 4
        assert (fitsim_project / ".fitsim" / "results.csv").exists()

    def test_run_overrides(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test command-line overrides reach the engine."""
        output = fitsim_project / "out.json"
        result = runner.invoke(
            app, ["run", "-r", "2", "--seed", "99", "--retries", "1", "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        state = SimulationState.load(fitsim_project / ".fitsim" / "state.json")
        assert state.settings.replications == 2
        assert state.settings.base_seed == 99
        assert state.settings.max_retries == 1
        assert len(json.loads(output.read_text())) == 4

    def test_resume_mismatch(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test resuming with different settings asks for a clean run."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["run", "--resume", "-r", "3"])

        assert result.exit_code == 1
        assert "Cannot resume" in result.output

    def test_resume(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test resuming a finished run succeeds."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["run", "--resume"])

        assert result.exit_code == 0, result.output
        assert "Results written" in result.output

    def test_invalid_config(self, fitsim_project: Path) -> None:
        """Test a bad config is reported."""
        config_path = fitsim_project / ".fitsim" / "config.yaml"
        _ = config_path.write_text("sample_sizes: [0]\n")
        result = runner.invoke(app, ["run", "--dry-run"])

        assert result.exit_code == 1
        assert "Error loading config" in result.output


class TestStatus:
    """Tests for fitsim status."""

    def test_no_state(self, fitsim_project: Path) -> None:
        """Test status before any run."""
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "No simulation state" in result.output

    def test_after_run(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test status after a complete run."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "4/4 conditions" in result.output
        assert "completed" in result.output


class TestExport:
    """Tests for fitsim export."""

    def test_no_state(self, fitsim_project: Path) -> None:
        """Test export with nothing to export."""
        result = runner.invoke(app, ["export", "results.csv"])

        assert result.exit_code == 0
        assert "No results to export" in result.output

    def test_bad_suffix(self, fitsim_project: Path) -> None:
        """Test unsupported output formats."""
        result = runner.invoke(app, ["export", "results.txt"])

        assert result.exit_code == 1
        assert "Output must be .csv or .json" in result.output

    def test_export_long(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test long-format export after a run."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["export", "long.json", "--long"])

        assert result.exit_code == 0, result.output
        assert "Exported 4 condition(s)" in result.output
        records = json.loads((fitsim_project / "long.json").read_text())
        assert len(records) == 4 * 6


class TestClean:
    """Tests for fitsim clean."""

    def test_nothing_to_clean(self, fitsim_project: Path) -> None:
        """Test clean without state."""
        result = runner.invoke(app, ["clean", "--force"])

        assert result.exit_code == 0
        assert "Nothing to clean" in result.output

    def test_clean(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test clean removes the saved state."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["clean", "-f"])

        assert result.exit_code == 0
        assert "Removed" in result.output
        assert not (fitsim_project / ".fitsim" / "state.json").exists()

    def test_clean_cancelled(self, fitsim_project: Path, stub_engine: None) -> None:
        """Test answering no keeps the state."""
        _ = runner.invoke(app, ["run"])
        result = runner.invoke(app, ["clean"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert os.path.exists(fitsim_project / ".fitsim" / "state.json")
