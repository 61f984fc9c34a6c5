"""Configuration models and loaders for :mod:`modresolve`."""

from __future__ import annotations

import os
from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

import tomllib
import tomlkit
from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from modresolve.resources import get_resource
from modresolve.resolver.errors import ResolverConfigError

if TYPE_CHECKING:  # pragma: no cover - imports only used for typing
    from modresolve.core.logging import Logger
    from modresolve.resolver.models import Resolver
    from modresolve.resolver.service import ModuleResolver


DEFAULTS_RESOURCE_NAME = "modresolve.defaults.toml"
DEFAULT_CONFIG_FILENAME = "modresolve.toml"
ENV_ROOT = "MODRESOLVE_ROOT"
ENV_LOG_LEVEL = "MODRESOLVE_LOG_LEVEL"


def _validate_alias_keys(value: dict[str, str]) -> dict[str, str]:
    for key, target in value.items():
        if not key.strip():
            raise ValueError("Alias keys cannot be blank.")
        if not str(target).strip():
            raise ValueError(f"Alias {key!r} has a blank target.")
    return value


class ResolverEntrySettings(BaseModel):
    """Declarative resolver entry.

    ``mounts`` maps request prefixes (which must start and end with ``/``)
    onto directories; relative directories are taken from the project root.
    """

    mounts: dict[str, str] = Field(
        default_factory=dict,
        description="Request prefix to directory mappings, tried in order.",
    )
    alias: dict[str, str] = Field(
        default_factory=dict,
        description="Aliases contributed by this resolver.",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("mounts")
    @classmethod
    def _validate_mounts(cls, value: dict[str, str]) -> dict[str, str]:
        for prefix in value:
            if not (prefix.startswith("/") and prefix.endswith("/")):
                raise ValueError(
                    f"Mount prefix {prefix!r} must start and end with '/'."
                )
        return value

    @field_validator("alias")
    @classmethod
    def _validate_alias(cls, value: dict[str, str]) -> dict[str, str]:
        return _validate_alias_keys(value)


class PluginSettings(BaseModel):
    """Bundle of aliases and resolvers merged into the project config."""

    name: str | None = Field(
        default=None,
        description="Optional label used in logs.",
    )
    alias: dict[str, str] = Field(
        default_factory=dict,
        description="Plugin aliases; project aliases override same keys.",
    )
    resolvers: list[ResolverEntrySettings] = Field(
        default_factory=list,
        description="Plugin resolvers appended after project resolvers.",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("alias")
    @classmethod
    def _validate_alias(cls, value: dict[str, str]) -> dict[str, str]:
        return _validate_alias_keys(value)


class ResolverSettings(BaseModel):
    """Root configuration for a resolver instance."""

    root: Path = Field(
        default_factory=Path.cwd,
        description="Absolute project root served by the dev server.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Default logging level.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Optional directory receiving JSON log files.",
    )
    debug_scopes: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Logger scopes forced to DEBUG (e.g. 'resolver').",
    )
    alias: dict[str, str] = Field(
        default_factory=dict,
        description="Project aliases: literal ids or '/prefix/' directories.",
    )
    resolvers: list[ResolverEntrySettings] = Field(
        default_factory=list,
        description="Project resolvers, consulted before plugin resolvers.",
    )
    plugins: list[PluginSettings] = Field(
        default_factory=list,
        description="Plugins contributing aliases and resolvers.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator("alias")
    @classmethod
    def _validate_alias(cls, value: dict[str, str]) -> dict[str, str]:
        return _validate_alias_keys(value)

    @model_validator(mode="after")
    def _post_process(self) -> "ResolverSettings":
        object.__setattr__(self, "log_level", self.log_level.upper())
        object.__setattr__(
            self,
            "root",
            self.root.expanduser().resolve(strict=False),
        )
        if self.log_dir is not None:
            object.__setattr__(self, "log_dir", self.log_dir.expanduser())
        object.__setattr__(
            self,
            "debug_scopes",
            tuple(
                dict.fromkeys(
                    scope.strip()
                    for scope in self.debug_scopes
                    if scope.strip()
                )
            ),
        )
        return self

    def effective_alias(self) -> dict[str, str]:
        """Return aliases after plugin merging.

        Project aliases win over plugin aliases with the same key.

        Example:
            >>> settings = ResolverSettings(
            ...     alias={"react": "preact"},
            ...     plugins=[PluginSettings(alias={"react": "x", "vue": "y"})],
            ... )
            >>> sorted(settings.effective_alias().items())
            [('react', 'preact'), ('vue', 'y')]
        """

        merged = dict(self.alias)
        for plugin in self.plugins:
            merged = {**plugin.alias, **merged}
        return merged

    def effective_resolvers(self) -> list[ResolverEntrySettings]:
        """Return project resolvers followed by each plugin's resolvers."""

        merged = list(self.resolvers)
        for plugin in self.plugins:
            merged.extend(plugin.resolvers)
        return merged


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content.

    Example:
        >>> read_packaged_defaults_text().startswith("#")
        True
    """

    return get_resource(DEFAULTS_RESOURCE_NAME).read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary."""

    return tomllib.loads(read_packaged_defaults_text())


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a ``modresolve.toml`` file.

    Raises:
        ResolverConfigError: If the file cannot be read or parsed.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ResolverConfigError(
            f"Failed to read config at {path}: {exc}"
        ) from exc
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ResolverConfigError(
            f"Failed to parse config at {path}: {exc}"
        ) from exc


def find_config_file(cwd: Path | None = None) -> Path | None:
    """Return ``modresolve.toml`` in ``cwd`` when present."""

    candidate = (cwd or Path.cwd()) / DEFAULT_CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Derive configuration overrides from ``MODRESOLVE_*`` variables.

    Example:
        >>> env_overrides({"MODRESOLVE_LOG_LEVEL": "debug"})
        {'log_level': 'debug'}
    """

    source = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    if source.get(ENV_ROOT):
        overrides["root"] = source[ENV_ROOT]
    if source.get(ENV_LOG_LEVEL):
        overrides["log_level"] = source[ENV_LOG_LEVEL]
    return overrides


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _anchor_path(value: Any, base: Path | None) -> Any:
    if value is None or base is None:
        return value
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return base / path


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    config_dir: Path | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ResolverSettings:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed ``modresolve.toml`` content.
        config_dir: Directory of the config file; relative ``root`` and
            ``log_dir`` values in ``user_config`` are anchored here.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Raises:
        ResolverConfigError: If the merged payload fails validation.
    """

    user_layer = dict(user_config or {})
    for key in ("root", "log_dir"):
        if key in user_layer:
            user_layer[key] = _anchor_path(user_layer[key], config_dir)

    stack = dict(defaults)
    for layer in (user_layer, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)

    try:
        return ResolverSettings(**stack)
    except ValidationError as exc:
        raise ResolverConfigError(
            f"Invalid resolver configuration: {exc}"
        ) from exc


def _entry_to_resolver(
    entry: ResolverEntrySettings,
    root: Path,
) -> "Resolver":
    from modresolve.core.paths import join_path, to_posix
    from modresolve.resolver.models import DirectoryAliasResolver, MountResolver

    mounts = []
    for prefix, directory in entry.mounts.items():
        target = Path(directory).expanduser()
        if not target.is_absolute():
            target = root / target
        mounts.append(
            DirectoryAliasResolver(
                key=prefix,
                target=join_path(to_posix(target)),
            )
        )
    return MountResolver(mounts=tuple(mounts), alias=dict(entry.alias) or None)


def build_resolver(
    settings: ResolverSettings,
    *,
    logger: "Logger | None" = None,
) -> "ModuleResolver":
    """Create a :class:`ModuleResolver` from validated settings."""

    from modresolve.resolver.service import create_resolver

    resolvers = [
        _entry_to_resolver(entry, settings.root)
        for entry in settings.effective_resolvers()
    ]
    return create_resolver(
        settings.root,
        resolvers,
        settings.effective_alias(),
        logger=logger,
    )


def _render_entry(entry: ResolverEntrySettings) -> tomlkit.items.Table:
    table = tomlkit.table()
    if entry.mounts:
        table["mounts"] = dict(entry.mounts)
    if entry.alias:
        table["alias"] = dict(entry.alias)
    return table


def render_config(settings: ResolverSettings, *, resolved: bool = False) -> str:
    """Render settings as ``modresolve.toml`` text.

    Args:
        settings: Configuration instance to serialize.
        resolved: When ``True`` plugins are folded into ``alias`` and
            ``resolvers`` and omitted from the output.
    """

    document = tomlkit.document()
    document.add(tomlkit.comment("Generated by modresolve config"))
    document.add(
        tomlkit.comment(
            "Precedence: CLI flags > env vars > modresolve.toml > defaults"
        )
    )
    document.add(tomlkit.nl())

    document["root"] = str(settings.root)
    document["log_level"] = settings.log_level
    if settings.log_dir is not None:
        document["log_dir"] = str(settings.log_dir)
    document["debug_scopes"] = list(settings.debug_scopes)

    alias = settings.effective_alias() if resolved else settings.alias
    alias_table = tomlkit.table()
    for key, target in alias.items():
        alias_table[key] = target
    document["alias"] = alias_table

    entries = settings.effective_resolvers() if resolved else settings.resolvers
    if entries:
        resolvers = tomlkit.aot()
        for entry in entries:
            resolvers.append(_render_entry(entry))
        document["resolvers"] = resolvers

    if settings.plugins and not resolved:
        plugins = tomlkit.aot()
        for plugin in settings.plugins:
            table = tomlkit.table()
            if plugin.name:
                table["name"] = plugin.name
            if plugin.alias:
                table["alias"] = dict(plugin.alias)
            if plugin.resolvers:
                nested = tomlkit.aot()
                for entry in plugin.resolvers:
                    nested.append(_render_entry(entry))
                table["resolvers"] = nested
            plugins.append(table)
        document["plugins"] = plugins

    return tomlkit.dumps(document)


__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULTS_RESOURCE_NAME",
    "ENV_LOG_LEVEL",
    "ENV_ROOT",
    "PluginSettings",
    "ResolverEntrySettings",
    "ResolverSettings",
    "build_resolver",
    "env_overrides",
    "find_config_file",
    "load_config",
    "load_packaged_defaults",
    "read_config_file",
    "read_packaged_defaults_text",
    "render_config",
]
