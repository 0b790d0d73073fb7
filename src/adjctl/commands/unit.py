"""Command group: create, inspect, edit, merge, and delete units."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from adjctl.commands._base import DEMOGRAPHIC_HELP, parse_counts, with_examples

if TYPE_CHECKING:
    from adjctl.commands._context import AppContext
    from adjctl.domain.models import Unit


def _build_unit(fields: dict[str, Any]) -> Unit:
    """Validate CLI input into a Unit, surfacing pydantic errors as usage errors."""
    from adjctl.domain.models import Unit

    try:
        return Unit.model_validate(fields)
    except ValidationError as exc:
        messages = "; ".join(e["msg"] for e in exc.errors())
        raise click.UsageError(messages) from exc


@click.group()
@with_examples(
    """\
  adjctl unit create --id P1 --group C1 --adjacent P2 --adjacent P3
  adjctl unit update P1 --adjacent P3 --adjacent P4
  adjctl unit update P1 --demographic white=10 --demographic others=5
  adjctl unit merge P1 P2
  adjctl unit list --group C1"""
)
def unit() -> None:
    """Create, edit, merge, and delete units."""


@unit.command("create")
@click.option("--id", "unit_id", default=None, help="Unit ID (generated if omitted).")
@click.option("--group", "group_id", required=True, help="Owning group ID.")
@click.option("--parent", "parent_id", default=None, help="Parent of the group, if it is new.")
@click.option("--adjacent", multiple=True, help="Adjacent unit ID (repeatable).")
@click.option("--enclosing", multiple=True, help="Enclosing unit ID (repeatable).")
@click.option("--name", "canonical_name", default=None, help="Canonical name.")
@click.option("--demographic", multiple=True, callback=parse_counts, help=DEMOGRAPHIC_HELP)
@click.pass_obj
def create(
    app: AppContext,
    unit_id: str | None,
    group_id: str,
    parent_id: str | None,
    adjacent: tuple[str, ...],
    enclosing: tuple[str, ...],
    canonical_name: str | None,
    demographic: dict[str, int] | None,
) -> None:
    """Insert a new unit and link it to its neighbors."""
    from adjctl.services.units import UnitService

    new_unit = _build_unit(
        {
            "id": unit_id,
            "group_id": group_id,
            "parent_id": parent_id,
            "adjacent_ids": adjacent,
            "enclosing_ids": enclosing,
            "canonical_name": canonical_name,
            "recompute_flag": demographic is not None,
            "demographic_snapshot": demographic,
        }
    )
    app.emit(UnitService(app.registry).create_unit(new_unit))


@unit.command("show")
@click.argument("unit_id")
@click.pass_obj
def show(app: AppContext, unit_id: str) -> None:
    """Show one unit."""
    from adjctl.services.units import UnitService

    app.emit(UnitService(app.registry).get_unit(unit_id))


@unit.command("list")
@click.option("--group", "group_id", default=None, help="Only units of this group.")
@click.pass_obj
def list_cmd(app: AppContext, group_id: str | None) -> None:
    """List units."""
    from adjctl.services.units import UnitService

    app.emit(UnitService(app.registry).list_units(group_id=group_id))


@unit.command("update")
@click.argument("unit_id")
@click.option("--adjacent", multiple=True, help="Replace the adjacency set (repeatable).")
@click.option("--clear-adjacent", is_flag=True, help="Replace the adjacency set with nothing.")
@click.option("--add-adjacent", multiple=True, help="Add one adjacent unit (repeatable).")
@click.option("--remove-adjacent", multiple=True, help="Remove one adjacent unit (repeatable).")
@click.option("--enclosing", multiple=True, help="Replace the enclosing set (repeatable).")
@click.option("--name", "canonical_name", default=None, help="New canonical name.")
@click.option(
    "--parent", "parent_id", default=None, help="Parent of the group, if a recompute creates it."
)
@click.option("--demographic", multiple=True, callback=parse_counts, help=DEMOGRAPHIC_HELP)
@click.pass_obj
def update(
    app: AppContext,
    unit_id: str,
    adjacent: tuple[str, ...],
    clear_adjacent: bool,
    add_adjacent: tuple[str, ...],
    remove_adjacent: tuple[str, ...],
    enclosing: tuple[str, ...],
    canonical_name: str | None,
    parent_id: str | None,
    demographic: dict[str, int] | None,
) -> None:
    """Edit a unit; neighbors are rewired to keep adjacency symmetric."""
    from adjctl.services.reconcile import ReconcileService
    from adjctl.services.units import UnitService

    if adjacent and clear_adjacent:
        raise click.UsageError("--adjacent and --clear-adjacent are mutually exclusive")

    current = UnitService(app.registry).get_unit(unit_id)
    if not current.ok:
        app.emit(current)
        return

    fields: dict[str, Any] = dict(current.data["unit"])
    adjacency = set(fields["adjacent_ids"])
    if adjacent or clear_adjacent:
        adjacency = set(adjacent)
    adjacency |= set(add_adjacent)
    adjacency -= set(remove_adjacent)
    fields["adjacent_ids"] = adjacency
    if enclosing:
        fields["enclosing_ids"] = enclosing
    if canonical_name is not None:
        fields["canonical_name"] = canonical_name
    if demographic is not None:
        fields["recompute_flag"] = True
        fields["demographic_snapshot"] = demographic
    if parent_id is not None:
        fields["parent_id"] = parent_id

    app.emit(ReconcileService(app.registry).reconcile_unit(_build_unit(fields)))


@unit.command("merge")
@click.argument("unit_ids", nargs=-1)
@click.option("--demographic", multiple=True, callback=parse_counts, help=DEMOGRAPHIC_HELP)
@click.pass_obj
def merge(app: AppContext, unit_ids: tuple[str, ...], demographic: dict[str, int] | None) -> None:
    """Merge the second unit into the first (PRIMARY ABSORBED)."""
    from adjctl.services.merge import MergeService

    app.emit(MergeService(app.registry).merge(list(unit_ids), demographic_snapshot=demographic))


@unit.command("delete")
@click.argument("unit_id")
@click.pass_obj
def delete(app: AppContext, unit_id: str) -> None:
    """Delete a unit (neighbors are not repaired; see ``check --fix``)."""
    from adjctl.services.units import UnitService

    app.emit(UnitService(app.registry).delete_unit(unit_id))
