"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, adjctl.toml only contains overrides.
An empty (or absent) adjctl.toml is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- adjctl.toml sections ---


class StoreConfig(BaseModel):
    """[store] section."""

    model_config = {"frozen": True}

    filename: str = "adjctl.db"


class CheckConfig(BaseModel):
    """[check] section."""

    model_config = {"frozen": True}

    repair_asymmetric: bool = True
    repair_dangling: bool = True


class AdjConfig(BaseModel):
    """Root configuration model for adjctl.toml."""

    model_config = {"frozen": True}

    store: StoreConfig = Field(default_factory=StoreConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
