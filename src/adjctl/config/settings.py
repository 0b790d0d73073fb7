"""AdjSettings: one frozen object for CLI flags, environment, and adjctl.toml.

Sources, strongest first:

1. keyword arguments (the global CLI flags)
2. ``ADJCTL_*`` environment variables (``ADJCTL_CHECK__REPAIR_DANGLING``
   reaches into a section)
3. the discovered ``adjctl.toml``
4. defaults on the section models
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from adjctl.config.discovery import find_config, load_config
from adjctl.config.models import CheckConfig, StoreConfig

# TOML file picked by ``from_cli`` for the settings object under construction.
_pending_toml: ContextVar[Path | None] = ContextVar("_pending_toml", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by a validated ``adjctl.toml``.

    Only the keys the file actually sets are contributed, so environment
    variables still reach the fields it leaves out.
    """

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = load_config(toml_path).model_dump(exclude_unset=True)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class AdjSettings(BaseSettings):
    """Settings shared by the CLI, the registry, and the services.

    Attributes:
        root: Directory holding ``.adjctl/``. Defaults to the directory of
            the discovered ``adjctl.toml``, else the working directory.
        config_path: The TOML file in effect, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ADJCTL_",
        "env_nested_delimiter": "__",
    }

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    store: StoreConfig = Field(default_factory=StoreConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _pending_toml.get()),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> AdjSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* that does not exist is ignored. Without
        one, ``adjctl.toml`` is searched upward from *root* (or the working
        directory).
        """
        if config_path:
            candidate = Path(config_path)
            toml_path = candidate if candidate.is_file() else None
        else:
            toml_path = find_config(root)

        if root is None:
            root = toml_path.parent if toml_path else Path.cwd()

        token = _pending_toml.set(toml_path)
        try:
            return cls(root=root, config_path=toml_path, **cli_flags)
        finally:
            _pending_toml.reset(token)
