"""Command group: inspect aggregate groups."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from adjctl.commands._context import AppContext


@click.group()
def group() -> None:
    """Inspect groups and their demographic totals."""


@group.command("show")
@click.argument("group_id")
@click.pass_obj
def show(app: AppContext, group_id: str) -> None:
    """Show a group's current totals."""
    from adjctl.services.units import UnitService

    app.emit(UnitService(app.registry).get_group(group_id))
