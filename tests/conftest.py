"""Shared pytest fixtures and test helpers for adjctl tests."""

from __future__ import annotations

from collections.abc import Callable, Generator, Iterable
from pathlib import Path

import pytest
from click.testing import CliRunner

from adjctl.config.settings import AdjSettings
from adjctl.domain.models import Group, Unit
from adjctl.infrastructure.registry import Registry
from adjctl.infrastructure.store import StoreFailure, UnitStore


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's ADJCTL_* environment out of the tests."""
    monkeypatch.delenv("ADJCTL_CONFIG", raising=False)
    monkeypatch.delenv("ADJCTL_ROOT", raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path) -> AdjSettings:
    return AdjSettings.from_cli(root=tmp_path)


@pytest.fixture
def registry(settings: AdjSettings) -> Generator[Registry]:
    """Registry on a fresh SQLite database under ``tmp_path``."""
    reg = Registry(settings)
    try:
        yield reg
    finally:
        reg.close()


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp directory so the CLI creates an isolated database.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test classes.
    """
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Graph seeding helpers
# ---------------------------------------------------------------------------

SeedFn = Callable[..., Unit]


@pytest.fixture
def seed(registry: Registry) -> SeedFn:
    """Write a unit straight through the store, bypassing reconciliation.

    ``seed("A", "B", "C")`` stores A bordering B and C. Neighbors are not
    touched, so tests can build asymmetric or dangling graphs on purpose.
    """

    def _seed(unit_id: str, *adjacent: str, group_id: str = "G1", **fields: object) -> Unit:
        unit = Unit(id=unit_id, group_id=group_id, adjacent_ids=frozenset(adjacent), **fields)
        return registry.units.put(unit)

    return _seed


@pytest.fixture
def seed_graph(seed: SeedFn) -> Callable[[dict[str, Iterable[str]]], None]:
    """Seed several units at once from an ``{id: neighbors}`` mapping."""

    def _seed_graph(edges: dict[str, Iterable[str]]) -> None:
        for unit_id, neighbors in edges.items():
            seed(unit_id, *neighbors)

    return _seed_graph


def adjacency(registry: Registry, unit_id: str) -> set[str]:
    """Stored adjacency set of *unit_id* (asserts the unit exists)."""
    unit = registry.units.get(unit_id)
    assert unit is not None, f"{unit_id} not stored"
    return set(unit.adjacent_ids)


@pytest.fixture
def adj(registry: Registry) -> Callable[[str], set[str]]:
    """Shorthand: ``adj("A") == {"B"}``."""
    return lambda unit_id: adjacency(registry, unit_id)


@pytest.fixture
def group(registry: Registry) -> Callable[..., Group]:
    """Store a group with the given totals."""

    def _group(group_id: str = "G1", **totals: int) -> Group:
        return registry.groups.put(Group(id=group_id, demographic_totals=totals))

    return _group


# ---------------------------------------------------------------------------
# Store failure injection
# ---------------------------------------------------------------------------


class FlakyUnitStore(UnitStore):
    """UnitStore whose N-th ``put`` (1-based) raises StoreFailure."""

    def __init__(self, engine: object, fail_on_put: int) -> None:
        super().__init__(engine)  # type: ignore[arg-type]
        self.fail_on_put = fail_on_put
        self.puts = 0

    def put(self, unit: Unit) -> Unit:
        self.puts += 1
        if self.puts == self.fail_on_put:
            raise StoreFailure(f"injected failure on put #{self.puts}") from OSError("disk full")
        return super().put(unit)


@pytest.fixture
def flaky_registry(
    registry: Registry, settings: AdjSettings
) -> Generator[Callable[[int], Registry]]:
    """Build a second Registry over the same database with a failing unit store.

    The returned registry shares the database of ``registry``, so tests can
    seed through ``registry`` and observe committed state through it too.
    """
    opened: list[Registry] = []

    def _make(fail_on_put: int) -> Registry:
        store = FlakyUnitStore(registry.engine, fail_on_put)
        reg = Registry(settings, units=store)
        opened.append(reg)
        return reg

    yield _make
    for reg in opened:
        reg.close()
