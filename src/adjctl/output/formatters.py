"""ServiceResult formatting for the CLI.

Three modes, chosen by :class:`OutputSettings`:

- ``--json``: the full ServiceResult as indented JSON.
- ``--quiet``: one status line (or bare IDs for listings).
- default: Rich rendering, with op-specific layouts for units, listings,
  and check reports, falling back to indented key-value pairs.
"""

from __future__ import annotations

import json as _json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from adjctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from adjctl.services.result import ServiceResult


@dataclass(frozen=True)
class OutputSettings:
    """Output mode flags resolved from the global CLI options."""

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_result(result: ServiceResult, *, settings: OutputSettings | None = None) -> str:
    """Format a ServiceResult for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return result.model_dump_json(indent=2)
    if settings.quiet:
        return _format_quiet(result)

    console = create_console()
    if result.ok:
        _status_line(console, result)
        renderer = _OP_RENDERERS.get(result.op, _render_fields)
        renderer(console, result.data)
        if settings.verbose and result.meta:
            console.print(Text("  meta:", style="adj.key"))
            console.print(f"    {_json.dumps(result.meta, separators=(',', ':'))}")
    else:
        _render_error(console, result)
    return get_output(console).rstrip("\n")


# ── Modes ─────────────────────────────────────────────────────────────


def _format_quiet(result: ServiceResult) -> str:
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"
    items = result.data.get("items")
    if isinstance(items, list):
        return "\n".join(str(i.get("id", "")) for i in items if isinstance(i, dict))
    return f"OK: {result.op}"


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="adj.ok"), Text(f"  {result.op}", style="adj.op"))


def _render_error(console: Console, result: ServiceResult) -> None:
    code = result.error.code if result.error else "ERROR"
    msg = result.error.message if result.error else "Unknown error"
    console.print(Text("ERROR", style="adj.error"), Text(f"  {result.op}", style="adj.op"))
    console.print(Text(f"  {code}: ", style="adj.key"), Text(msg))
    if result.error and result.error.detail:
        for key, value in result.error.detail.items():
            _field(console, key, value)


# ── Renderers ─────────────────────────────────────────────────────────


def _field(console: Console, key: str, value: Any) -> None:
    if isinstance(value, (dict, list)):
        value = _json.dumps(value, separators=(",", ":"))
    style = "adj.id" if key == "id" or key.endswith("_id") else ""
    console.print(Text(f"  {key}: ", style="adj.key"), Text(str(value), style=style))


def _render_fields(console: Console, data: dict[str, Any]) -> None:
    for key, value in data.items():
        _field(console, key, value)


def _render_unit_op(console: Console, data: dict[str, Any]) -> None:
    """Unit payload first, then neighbor outcomes, then the remaining keys."""
    unit = data.get("unit") or {}
    for key in ("id", "group_id", "adjacent_ids", "enclosing_ids"):
        if key in unit:
            _field(console, key, unit[key])

    neighbors = data.get("neighbors") or []
    if neighbors:
        table = Table(show_header=True, header_style="adj.key", box=None, pad_edge=False)
        table.add_column("neighbor")
        table.add_column("action")
        table.add_column("status")
        for n in neighbors:
            status = n.get("status", "")
            label = status if "reason" not in n else f"{status} ({n['reason']})"
            table.add_row(
                Text(n.get("neighbor_id", ""), style="adj.id"),
                n.get("action", ""),
                Text(label, style=f"adj.{status}" if status else ""),
            )
        console.print(table)

    for key, value in data.items():
        if key not in ("unit", "neighbors", "id"):
            _field(console, key, value)


def _render_list(console: Console, data: dict[str, Any]) -> None:
    table = Table(show_header=True, header_style="adj.key", box=None, pad_edge=False)
    table.add_column("id")
    table.add_column("group")
    table.add_column("adjacent")
    for item in data.get("items", []):
        table.add_row(
            Text(str(item.get("id", "")), style="adj.id"),
            str(item.get("group_id", "")),
            ", ".join(item.get("adjacent_ids", [])),
        )
    console.print(table)
    _field(console, "count", data.get("count", 0))


def _render_check(console: Console, data: dict[str, Any]) -> None:
    for issue in data.get("issues", []):
        style = "adj.error" if issue.get("severity") == "error" else "adj.warning"
        console.print(
            Text(f"  [{issue.get('category')}] ", style=style), Text(issue.get("message", ""))
        )
    _field(console, "count", data.get("count", 0))


_OP_RENDERERS = {
    "create_unit": _render_unit_op,
    "get_unit": _render_unit_op,
    "reconcile_unit": _render_unit_op,
    "merge_units": _render_unit_op,
    "list_units": _render_list,
    "check": _render_check,
}
