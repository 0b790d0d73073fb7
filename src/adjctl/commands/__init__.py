"""Subcommand modules for adjctl.

Provides register_commands() which uses deferred imports to keep
``adjctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the ``unit`` and ``group`` groups and the ``check`` command."""
    from adjctl.commands.check import check
    from adjctl.commands.group import group
    from adjctl.commands.unit import unit

    cli.add_command(unit)
    cli.add_command(group)
    cli.add_command(check)
