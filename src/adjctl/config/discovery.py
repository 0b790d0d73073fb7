"""Locate and parse ``adjctl.toml``.

Discovery walks up from the starting directory the way git looks for
``.git/``. ``ADJCTL_CONFIG`` names a file directly and disables the walk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from adjctl.config.models import AdjConfig

CONFIG_FILENAME = "adjctl.toml"
CONFIG_ENV_VAR = "ADJCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest ``adjctl.toml`` at or above *start* (default: cwd).

    When ``ADJCTL_CONFIG`` is set, only that file is considered.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_toml(path: Path) -> dict[str, Any]:
    """Parse *path*; a missing file reads as empty.

    Raises :class:`click.ClickException` on malformed TOML so the CLI
    reports it as a usage problem rather than a traceback.
    """
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise click.ClickException(msg) from exc


def load_config(path: Path | None) -> AdjConfig:
    """Validate the sections of the TOML file at *path*; None gives the defaults.

    Raises :class:`click.ClickException` when a section value has the wrong
    type. Keys outside the known sections are ignored.
    """
    if path is None:
        return AdjConfig()
    try:
        return AdjConfig.model_validate(read_toml(path))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        msg = f"Invalid configuration in {path}: {problems}"
        raise click.ClickException(msg) from exc
