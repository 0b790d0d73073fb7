"""Shared Click helpers: ``--examples`` support and count parsing.

``--examples`` prints usage examples and exits, keeping ``--help`` short.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import click

from adjctl.domain.demographics import DEMOGRAPHIC_CATEGORIES

_F = TypeVar("_F", bound=Callable[..., Any])


def with_examples(examples: str) -> Callable[[_F], _F]:
    """Decorator adding an eager ``--examples`` flag to a command or group."""

    def show(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    return click.option(
        "--examples",
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=show,
        help="Show usage examples.",
    )


def parse_counts(
    _ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, int] | None:
    """Click callback turning repeated ``name=count`` options into a dict.

    Returns None when the option was not given at all.
    """
    if not values:
        return None
    counts: dict[str, int] = {}
    for raw in values:
        name, sep, number = raw.partition("=")
        name = name.strip()
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=COUNT, got {raw!r}", param=param)
        try:
            counts[name] = int(number)
        except ValueError:
            msg = f"count for {name!r} is not an integer"
            raise click.BadParameter(msg, param=param) from None
    return counts


DEMOGRAPHIC_HELP = (
    "Demographic count NAME=COUNT (repeatable); sets the recompute flag. "
    f"Names: {', '.join(DEMOGRAPHIC_CATEGORIES)}."
)
