"""Tests for UnitService."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from adjctl.config.settings import AdjSettings
from adjctl.domain.models import Group, Unit
from adjctl.infrastructure.database.engine import init_database
from adjctl.infrastructure.registry import Registry
from adjctl.infrastructure.store import StoreFailure, UnitStore
from adjctl.services.result import INVALID_ARGUMENT, NOT_FOUND, STORE_FAILURE
from adjctl.services.units import UnitService

SeedGraph = Callable[[dict[str, Iterable[str]]], None]
Adj = Callable[[str], set[str]]


class _ReferrersFailStore(UnitStore):
    def referrers(self, unit_id: str) -> list[str]:
        raise StoreFailure(f"injected failure listing referrers of {unit_id}")


def _totals(registry: Registry, group_id: str) -> dict[str, int]:
    stored = registry.groups.get(group_id)
    assert stored is not None
    return stored.demographic_totals


class TestCreateUnit:
    def test_links_existing_neighbors(
        self, registry: Registry, seed_graph: SeedGraph, adj: Adj
    ) -> None:
        seed_graph({"B": [], "C": ["Z"]})
        unit = Unit(id="A", group_id="G1", adjacent_ids=frozenset({"B", "C"}))
        result = UnitService(registry).create_unit(unit)

        assert result.ok, result.error
        assert result.data["id"] == "A"
        assert adj("A") == {"B", "C"}
        assert adj("B") == {"A"}
        assert adj("C") == {"A", "Z"}

    def test_generates_id(self, registry: Registry) -> None:
        result = UnitService(registry).create_unit(Unit(group_id="G1"))
        assert result.ok
        new_id = result.data["id"]
        assert new_id
        assert registry.units.get(new_id) is not None

    def test_missing_group_seeded(self, registry: Registry) -> None:
        result = UnitService(registry).create_unit(
            Unit(id="A", group_id="G7", parent_id="S1")
        )
        assert result.data["group_created"] is True
        assert result.data["propagated"] is False
        assert registry.groups.get("G7") == Group(id="G7", parent_id="S1")

    def test_new_group_receives_snapshot(self, registry: Registry) -> None:
        result = UnitService(registry).create_unit(
            Unit(id="A", group_id="G7", demographic_snapshot={"native_amer": 8})
        )
        assert result.data["propagated"] is True
        assert _totals(registry, "G7") == {"native_amer": 8}

    def test_existing_group_needs_flag(
        self, registry: Registry, group: Callable[..., Group]
    ) -> None:
        group("G1", white=3)
        svc = UnitService(registry)
        svc.create_unit(Unit(id="A", group_id="G1", demographic_snapshot={"white": 50}))
        assert _totals(registry, "G1") == {"white": 3}

        svc.create_unit(
            Unit(
                id="B",
                group_id="G1",
                recompute_flag=True,
                demographic_snapshot={"white": 50},
            )
        )
        assert _totals(registry, "G1") == {"white": 50}

    def test_transients_not_persisted(self, registry: Registry) -> None:
        UnitService(registry).create_unit(
            Unit(id="A", group_id="G1", parent_id="S1", demographic_snapshot={"white": 1})
        )
        stored = registry.units.get("A")
        assert stored is not None
        assert stored.parent_id is None
        assert stored.demographic_snapshot is None

    def test_unknown_neighbor_skipped(self, registry: Registry, adj: Adj) -> None:
        result = UnitService(registry).create_unit(
            Unit(id="A", group_id="G1", adjacent_ids=frozenset({"NOPE"}))
        )
        assert result.ok
        assert adj("A") == {"NOPE"}
        assert result.data["neighbors"][0]["status"] == "skipped"
        assert result.warnings

    def test_duplicate_rejected(self, registry: Registry, seed_graph: SeedGraph) -> None:
        seed_graph({"A": []})
        result = UnitService(registry).create_unit(Unit(id="A", group_id="G1"))
        assert result.error is not None
        assert result.error.code == INVALID_ARGUMENT

    def test_self_adjacency_rejected(self, registry: Registry) -> None:
        result = UnitService(registry).create_unit(
            Unit(id="A", group_id="G1", adjacent_ids=frozenset({"A"}))
        )
        assert result.error is not None
        assert result.error.code == INVALID_ARGUMENT
        assert registry.units.get("A") is None

    def test_store_failure_while_linking(
        self,
        registry: Registry,
        seed_graph: SeedGraph,
        adj: Adj,
        flaky_registry: Callable[[int], Registry],
    ) -> None:
        seed_graph({"B": [], "C": []})
        unit = Unit(id="A", group_id="G1", adjacent_ids=frozenset({"B", "C"}))
        # put #1 = A, #2 = B, #3 = C fails.
        result = UnitService(flaky_registry(3)).create_unit(unit)
        assert result.error is not None
        assert result.error.code == STORE_FAILURE
        assert [n["neighbor_id"] for n in result.error.detail["committed"]] == ["B"]
        assert adj("A") == {"B", "C"}
        assert adj("C") == set()


class TestLookup:
    def test_get_unit(self, registry: Registry, seed_graph: SeedGraph) -> None:
        seed_graph({"A": ["B"]})
        result = UnitService(registry).get_unit("A")
        assert result.ok
        assert result.data["unit"]["adjacent_ids"] == ["B"]

    def test_get_unit_missing(self, registry: Registry) -> None:
        result = UnitService(registry).get_unit("A")
        assert result.error is not None
        assert result.error.code == NOT_FOUND

    def test_list_units(self, registry: Registry, seed: Callable[..., Unit]) -> None:
        seed("B", group_id="G1")
        seed("A", group_id="G2")
        seed("C", group_id="G1")
        svc = UnitService(registry)

        everything = svc.list_units()
        assert everything.data["count"] == 3
        assert [u["id"] for u in everything.data["items"]] == ["A", "B", "C"]

        only_g1 = svc.list_units(group_id="G1")
        assert [u["id"] for u in only_g1.data["items"]] == ["B", "C"]

    def test_get_group(self, registry: Registry, group: Callable[..., Group]) -> None:
        group("G1", others=6)
        result = UnitService(registry).get_group("G1")
        assert result.ok
        assert result.data["group"]["demographic_totals"] == {"others": 6}

    def test_get_group_missing(self, registry: Registry) -> None:
        result = UnitService(registry).get_group("G1")
        assert result.error is not None
        assert result.error.code == NOT_FOUND


class TestDeleteUnit:
    def test_reports_dangling_referrers(
        self, registry: Registry, seed_graph: SeedGraph, adj: Adj
    ) -> None:
        seed_graph({"A": ["B", "C"], "B": ["A"], "C": ["A"]})
        result = UnitService(registry).delete_unit("A")
        assert result.ok
        assert result.data["existed"] is True
        assert result.data["dangling_referrers"] == ["B", "C"]
        assert len(result.warnings) == 1
        # Neighbors are not repaired on delete.
        assert adj("B") == {"A"}

    def test_idempotent(self, registry: Registry) -> None:
        result = UnitService(registry).delete_unit("A")
        assert result.ok
        assert result.data["existed"] is False
        assert result.warnings == []

    def test_store_failure_while_listing_referrers(
        self, registry: Registry, settings: AdjSettings, seed_graph: SeedGraph
    ) -> None:
        seed_graph({"A": ["B"], "B": ["A"]})
        reg = Registry(settings, units=_ReferrersFailStore(registry.engine))
        try:
            result = UnitService(reg).delete_unit("A")
        finally:
            reg.close()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == STORE_FAILURE
        # The delete itself committed before the lookup failed.
        assert registry.units.get("A") is None

    def test_referrers_read_through_injected_store(
        self, tmp_path: Path, settings: AdjSettings
    ) -> None:
        other = init_database(tmp_path / "other")
        units = UnitStore(other)
        units.put(Unit(id="A", group_id="G1", adjacent_ids=frozenset({"B"})))
        units.put(Unit(id="B", group_id="G1", adjacent_ids=frozenset({"A"})))
        reg = Registry(settings, units=units)
        try:
            result = UnitService(reg).delete_unit("B")
        finally:
            reg.close()
            other.dispose()
        assert result.ok
        assert result.data["existed"] is True
        assert result.data["dangling_referrers"] == ["A"]
