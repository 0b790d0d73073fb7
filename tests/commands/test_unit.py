"""Tests for the ``unit`` command group."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from adjctl.cli import cli
from adjctl.config.settings import AdjSettings
from adjctl.domain.models import Unit
from adjctl.infrastructure.registry import Registry


def _json(cli_runner: CliRunner, *args: str) -> dict[str, Any]:
    result = cli_runner.invoke(cli, ["--json", *args])
    assert result.exit_code == 0, result.output
    data: dict[str, Any] = json.loads(result.stdout)
    return data


def _adjacent(cli_runner: CliRunner, unit_id: str) -> list[str]:
    adjacent: list[str] = _json(cli_runner, "unit", "show", unit_id)["data"]["unit"][
        "adjacent_ids"
    ]
    return adjacent


@pytest.mark.usefixtures("_isolated_root")
class TestUnitCreate:
    def test_create_links_neighbors(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "create", "--id", "B", "--group", "C1")
        data = _json(
            cli_runner, "unit", "create", "--id", "A", "--group", "C1", "--adjacent", "B"
        )
        assert data["op"] == "create_unit"
        assert data["data"]["unit"]["adjacent_ids"] == ["B"]
        assert _adjacent(cli_runner, "B") == ["A"]

    def test_create_generates_id(self, cli_runner: CliRunner) -> None:
        data = _json(cli_runner, "unit", "create", "--group", "C1")
        assert data["data"]["id"]

    def test_create_with_demographics_seeds_group(self, cli_runner: CliRunner) -> None:
        _json(
            cli_runner,
            "unit",
            "create",
            "--id",
            "A",
            "--group",
            "C1",
            "--demographic",
            "white=3",
            "--demographic",
            "others=1",
        )
        group = _json(cli_runner, "group", "show", "C1")["data"]["group"]
        assert group["demographic_totals"] == {"white": 3, "others": 1}

    def test_unknown_category_is_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["unit", "create", "--group", "C1", "--demographic", "martian=1"]
        )
        assert result.exit_code == 2
        assert "martian" in result.output

    def test_malformed_count_is_usage_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["unit", "create", "--group", "C1", "--demographic", "white"]
        )
        assert result.exit_code == 2
        assert "NAME=COUNT" in result.output

    def test_skipped_neighbor_warns_on_stderr(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["unit", "create", "--id", "A", "--group", "C1", "--adjacent", "NOPE"]
        )
        assert result.exit_code == 0
        assert "WARNING: Skipped add on neighbor NOPE" in result.stderr
        assert "WARNING" not in result.stdout

    def test_duplicate_fails(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "create", "--id", "A", "--group", "C1")
        result = cli_runner.invoke(cli, ["--json", "unit", "create", "--id", "A", "--group", "C1"])
        assert result.exit_code == 1
        assert result.stdout == ""
        assert json.loads(result.stderr)["error"]["code"] == "INVALID_ARGUMENT"


@pytest.mark.usefixtures("_isolated_root")
class TestUnitUpdate:
    @pytest.fixture(autouse=True)
    def _graph(self, _isolated_root: None, cli_runner: CliRunner) -> None:
        for unit_id in ("B", "C", "D"):
            _json(cli_runner, "unit", "create", "--id", unit_id, "--group", "C1")
        _json(
            cli_runner,
            "unit",
            "create",
            "--id",
            "A",
            "--group",
            "C1",
            "--adjacent",
            "B",
            "--adjacent",
            "C",
        )

    def test_replace_adjacency(self, cli_runner: CliRunner) -> None:
        data = _json(cli_runner, "unit", "update", "A", "--adjacent", "C", "--adjacent", "D")
        assert data["data"]["removed"] == ["B"]
        assert data["data"]["added"] == ["D"]
        assert _adjacent(cli_runner, "B") == []
        assert _adjacent(cli_runner, "D") == ["A"]

    def test_add_and_remove(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "update", "A", "--add-adjacent", "D", "--remove-adjacent", "B")
        assert _adjacent(cli_runner, "A") == ["C", "D"]
        assert _adjacent(cli_runner, "B") == []

    def test_clear_adjacent(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "update", "A", "--clear-adjacent")
        assert _adjacent(cli_runner, "A") == []
        assert _adjacent(cli_runner, "C") == []

    def test_rename_keeps_adjacency(self, cli_runner: CliRunner) -> None:
        data = _json(cli_runner, "unit", "update", "A", "--name", "Precinct A")
        assert data["data"]["adjacency_changed"] is False
        assert data["data"]["unit"]["canonical_name"] == "Precinct A"
        assert _adjacent(cli_runner, "A") == ["B", "C"]

    def test_demographic_replaces_group_totals(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "update", "A", "--demographic", "asian=4")
        _json(cli_runner, "unit", "update", "A", "--demographic", "white=9")
        group = _json(cli_runner, "group", "show", "C1")["data"]["group"]
        assert group["demographic_totals"] == {"white": 9}

    def test_parent_seeds_missing_group(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        # A unit whose group row was never written, as an import would leave it.
        reg = Registry(AdjSettings.from_cli(root=tmp_path))
        try:
            reg.units.put(Unit(id="E", group_id="C9"))
        finally:
            reg.close()

        _json(cli_runner, "unit", "update", "E", "--demographic", "white=3", "--parent", "S1")
        group = _json(cli_runner, "group", "show", "C9")["data"]["group"]
        assert group["parent_id"] == "S1"
        assert group["demographic_totals"] == {"white": 3}

    def test_self_adjacency_fails(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "unit", "update", "A", "--add-adjacent", "A"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "INVALID_ARGUMENT"

    def test_conflicting_flags(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli, ["unit", "update", "A", "--adjacent", "B", "--clear-adjacent"]
        )
        assert result.exit_code == 2

    def test_missing_unit(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "unit", "update", "NOPE", "--name", "x"])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "NOT_FOUND"


@pytest.mark.usefixtures("_isolated_root")
class TestUnitMerge:
    @pytest.fixture(autouse=True)
    def _graph(self, _isolated_root: None, cli_runner: CliRunner) -> None:
        for unit_id in ("Q", "R", "S"):
            _json(cli_runner, "unit", "create", "--id", unit_id, "--group", "C1")
        _json(cli_runner, "unit", "create", "--id", "P", "--group", "C1", "--adjacent", "Q")
        _json(
            cli_runner, "unit", "create", "--id", "X", "--group", "C1",
            "--adjacent", "R", "--adjacent", "S", "--adjacent", "P",
        )  # fmt: skip

    def test_merge(self, cli_runner: CliRunner) -> None:
        data = _json(cli_runner, "unit", "merge", "P", "X")
        assert data["data"]["absorbed_id"] == "X"
        assert _adjacent(cli_runner, "P") == ["Q", "R", "S"]
        assert _adjacent(cli_runner, "S") == ["P"]

        missing = cli_runner.invoke(cli, ["unit", "show", "X"])
        assert missing.exit_code == 1

    def test_merge_with_demographics(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "merge", "P", "X", "--demographic", "others=7")
        group = _json(cli_runner, "group", "show", "C1")["data"]["group"]
        assert group["demographic_totals"] == {"others": 7}

    @pytest.mark.parametrize("ids", [["P"], ["P", "X", "Q"]])
    def test_merge_needs_two_ids(self, cli_runner: CliRunner, ids: list[str]) -> None:
        result = cli_runner.invoke(cli, ["--json", "unit", "merge", *ids])
        assert result.exit_code == 1
        assert json.loads(result.stderr)["error"]["code"] == "INVALID_ARGUMENT"

    def test_self_merge(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["unit", "merge", "P", "P"])
        assert result.exit_code == 1
        assert "INVALID_ARGUMENT" in result.stderr


@pytest.mark.usefixtures("_isolated_root")
class TestUnitListDelete:
    def test_list_quiet_prints_ids(self, cli_runner: CliRunner) -> None:
        for unit_id, grp in (("B", "C1"), ("A", "C2"), ("C", "C1")):
            _json(cli_runner, "unit", "create", "--id", unit_id, "--group", grp)
        result = cli_runner.invoke(cli, ["-q", "unit", "list"])
        assert result.stdout.split() == ["A", "B", "C"]
        result = cli_runner.invoke(cli, ["-q", "unit", "list", "--group", "C1"])
        assert result.stdout.split() == ["B", "C"]

    def test_list_human(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "create", "--id", "A", "--group", "C1")
        result = cli_runner.invoke(cli, ["unit", "list"])
        assert result.exit_code == 0
        assert "list_units" in result.stdout
        assert re.search(r"count:\s+1", result.stdout)

    def test_delete_warns_about_referrers(self, cli_runner: CliRunner) -> None:
        _json(cli_runner, "unit", "create", "--id", "B", "--group", "C1")
        _json(cli_runner, "unit", "create", "--id", "A", "--group", "C1", "--adjacent", "B")
        result = cli_runner.invoke(cli, ["unit", "delete", "A"])
        assert result.exit_code == 0
        assert "still list A" in result.stderr
        assert _adjacent(cli_runner, "B") == ["A"]

    def test_examples_flag(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["unit", "--examples"])
        assert result.exit_code == 0
        assert "adjctl unit merge P1 P2" in result.output
