"""Command-line interface for inspecting :mod:`modresolve` resolution.

The Typer application exposes one command per resolver operation so a
project's alias and resolver configuration can be checked without starting
the dev server.

Example:
    >>> import typer
    >>> from modresolve.cli import create_app
    >>> isinstance(create_app(), typer.Typer)
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import typer

from modresolve.core.config import (
    ResolverSettings,
    build_resolver,
    env_overrides,
    find_config_file,
    load_config,
    load_packaged_defaults,
    read_config_file,
    render_config,
)
from modresolve.core.logging import Logger, configure_logging, get_logger
from modresolve.resolver.errors import ResolverConfigError, ResolverError
from modresolve.resolver.service import ModuleResolver

_app_help = (
    "Inspect how the dev server maps import requests to files."
    "\n\n"
    "Configuration is read from `modresolve.toml` in the current directory "
    "unless `--config` points elsewhere."
)


@dataclass(slots=True)
class ResolverCLIContext:
    """Shared state carried across `modresolve` commands."""

    settings: ResolverSettings
    logger: Logger
    _resolver: ModuleResolver | None = field(default=None, repr=False)

    def resolver(self) -> ModuleResolver:
        """Return the resolver, building it on first use."""

        if self._resolver is None:
            self._resolver = build_resolver(self.settings)
        return self._resolver


def _load_settings(
    *,
    root: Path | None,
    config_path: Path | None,
    log_level: str | None,
    debug_scopes: Sequence[str] | None,
) -> ResolverSettings:
    path = config_path or find_config_file()
    user_config = read_config_file(path) if path is not None else None
    config_dir = None
    if path is not None:
        config_dir = path.expanduser().resolve().parent

    cli_overrides: dict[str, Any] = {}
    if root is not None:
        cli_overrides["root"] = root.expanduser().resolve(strict=False)
    if log_level:
        cli_overrides["log_level"] = log_level
    if debug_scopes:
        cli_overrides["debug_scopes"] = list(debug_scopes)

    return load_config(
        defaults=load_packaged_defaults(),
        user_config=user_config,
        config_dir=config_dir,
        env_config=env_overrides(),
        cli_overrides=cli_overrides,
    )


def _require_context(ctx: typer.Context) -> ResolverCLIContext:
    context = getattr(ctx, "obj", None)
    if not isinstance(context, ResolverCLIContext):
        typer.secho(
            "Internal error: resolver context not initialized.",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)
    return context


def _handle_failure(
    context: ResolverCLIContext,
    *,
    action: str,
    error: Exception,
    subject: str,
) -> None:
    typer.secho(f"{action} failed: {error}", fg=typer.colors.RED, err=True)
    context.logger.error(
        "resolve-command-failed",
        action=action,
        subject=subject,
        error=str(error),
    )
    raise typer.Exit(code=1) from error


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``modresolve`` CLI."""

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
    )

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        root: Path | None = typer.Option(
            None,
            "--root",
            "-r",
            help="Project root (defaults to MODRESOLVE_ROOT or the cwd).",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to a modresolve.toml file.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        debug: list[str] | None = typer.Option(
            None,
            "--debug",
            "-d",
            metavar="SCOPE",
            help="Force DEBUG logs for a scope such as 'resolver' or '*'.",
        ),
    ) -> None:
        try:
            settings = _load_settings(
                root=root,
                config_path=config,
                log_level=log_level,
                debug_scopes=debug,
            )
        except ResolverConfigError as exc:
            typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

        try:
            configure_logging(
                level=settings.log_level,
                log_dir=settings.log_dir,
                debug_scopes=settings.debug_scopes,
            )
        except ValueError as exc:
            typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

        ctx.obj = ResolverCLIContext(
            settings=settings,
            logger=get_logger(__name__, command=ctx.invoked_subcommand),
        )

    @app.command("request", help="Resolve a public request path to a file.")
    def request_command(
        ctx: typer.Context,
        public_path: str = typer.Argument(
            ..., help="Request path, e.g. /src/app."
        ),
    ) -> None:
        context = _require_context(ctx)
        typer.echo(context.resolver().request_to_file(public_path))

    @app.command("file", help="Map a file path back to its request path.")
    def file_command(
        ctx: typer.Context,
        file_path: Path = typer.Argument(..., help="File on disk."),
    ) -> None:
        context = _require_context(ctx)
        absolute = file_path.expanduser().absolute()
        typer.echo(context.resolver().file_to_request(absolute))

    @app.command("normalize", help="Print the canonical request path.")
    def normalize_command(
        ctx: typer.Context,
        public_path: str = typer.Argument(
            ..., help="Possibly fuzzy request path."
        ),
    ) -> None:
        context = _require_context(ctx)
        try:
            normalized = context.resolver().normalize_public_path(public_path)
        except ResolverError as exc:
            _handle_failure(
                context,
                action="normalize",
                error=exc,
                subject=public_path,
            )
            return
        typer.echo(normalized)

    @app.command("relative", help="Resolve an import relative to its importer.")
    def relative_command(
        ctx: typer.Context,
        importer: str = typer.Argument(..., help="Importer request path."),
        importee: str = typer.Argument(..., help="Import specifier."),
    ) -> None:
        context = _require_context(ctx)
        result = context.resolver().resolve_relative_request(importer, importee)
        typer.echo(str(result))

    @app.command("public", help="Report whether a request hits public/.")
    def public_command(
        ctx: typer.Context,
        public_path: str = typer.Argument(..., help="Request path."),
    ) -> None:
        context = _require_context(ctx)
        is_public = context.resolver().is_public_request(public_path)
        typer.echo("public" if is_public else "module")

    @app.command("alias", help="Look up the literal alias for a module id.")
    def alias_command(
        ctx: typer.Context,
        module_id: str = typer.Argument(..., help="Bare module id."),
    ) -> None:
        context = _require_context(ctx)
        aliased = context.resolver().alias(module_id)
        if aliased is None:
            typer.secho(f"No alias for {module_id!r}.", fg=typer.colors.YELLOW)
            raise typer.Exit(code=1)
        typer.echo(aliased)

    @app.command("config", help="Print or eject the resolved configuration.")
    def config_command(
        ctx: typer.Context,
        resolved: bool = typer.Option(
            False,
            "--resolved",
            help="Fold plugins into aliases and resolvers.",
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write the configuration to this file instead of stdout.",
        ),
    ) -> None:
        context = _require_context(ctx)
        text = render_config(context.settings, resolved=resolved)
        if output is None:
            typer.echo(text, nl=False)
            return
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(text, encoding="utf-8")
        except OSError as exc:
            _handle_failure(
                context,
                action="config",
                error=exc,
                subject=str(output),
            )
            return
        context.logger.info("config-ejected", path=str(output))
        typer.secho(f"Configuration written to {output}", fg=typer.colors.GREEN)

    return app


__all__ = ["ResolverCLIContext", "create_app"]
