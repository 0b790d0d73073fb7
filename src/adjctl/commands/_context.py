"""AppContext: per-invocation state handed to every subcommand.

Holds the settings, opens the registry on demand, and turns a
:class:`ServiceResult` into output plus an exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from adjctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from adjctl.config.settings import AdjSettings
    from adjctl.infrastructure.registry import Registry
    from adjctl.services.result import ServiceResult


class AppContext:
    """State shared by the command tree for one CLI run.

    Logging is configured on construction. The database is not touched
    until a command asks for :attr:`registry`.
    """

    def __init__(self, settings: AdjSettings) -> None:
        from adjctl.config.logging import configure_logging

        self.settings = settings
        self._registry: Registry | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)
        if settings.verbose:
            from adjctl.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def registry(self) -> Registry:
        if self._registry is None:
            from adjctl.infrastructure.registry import Registry

            self._registry = Registry(self.settings)
        return self._registry

    def _output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; a failed result goes to stderr and exits 1.

        Warnings on a successful result are echoed to stderr unless JSON
        output is on, where they are already part of the payload.
        """
        opts = self._output_settings()
        rendered = format_result(result, settings=opts)
        if not result.ok:
            click.echo(rendered, err=True)
            raise SystemExit(1)
        click.echo(rendered)
        if opts.json_output:
            return
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)

    def close(self) -> None:
        if self._registry is not None:
            self._registry.close()
            self._registry = None
