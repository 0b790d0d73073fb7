"""Command: report (and optionally repair) adjacency integrity issues."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from adjctl.commands._base import with_examples

if TYPE_CHECKING:
    from adjctl.commands._context import AppContext


@click.command()
@with_examples(
    """\
  adjctl check
  adjctl check --fix
  adjctl --json check"""
)
@click.option("--fix", is_flag=True, help="Repair self-loops, asymmetric edges, dangling refs.")
@click.pass_obj
def check(app: AppContext, fix: bool) -> None:
    """Check adjacency symmetry and references."""
    from adjctl.services.check import CheckService

    svc = CheckService(app.registry)
    app.emit(svc.repair() if fix else svc.check())
