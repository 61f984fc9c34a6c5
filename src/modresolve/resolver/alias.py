"""Classify configured aliases into literal and directory rewrites."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from modresolve.core.logging import Logger, get_logger
from modresolve.core.paths import is_dir, join_path, to_posix
from modresolve.resolver.models import DirectoryAliasResolver, Resolver

__all__ = ["AliasTable", "build_alias_table", "is_directory_alias_key"]


@dataclass(slots=True)
class AliasTable:
    """Aliases split by how they apply.

    ``literal`` rewrites exact module ids (no path semantics). ``directories``
    maps request prefixes ending in ``/`` to absolute directories, and
    ``resolvers`` holds the chain entries synthesized for those prefixes in
    registration order.
    """

    literal: dict[str, str] = field(default_factory=dict)
    directories: dict[str, str] = field(default_factory=dict)
    resolvers: list[DirectoryAliasResolver] = field(default_factory=list)

    def directory_for(self, public_path: str) -> tuple[str, str] | None:
        """Return the first ``(key, target)`` whose key prefixes the path."""

        for key, target in self.directories.items():
            if public_path.startswith(key):
                return key, target
        return None


def is_directory_alias_key(key: str, target: str) -> bool:
    """Return ``True`` when ``key``/``target`` describe a directory alias.

    Example:
        >>> is_directory_alias_key("/@foo/", "/abs/foo")
        True
        >>> is_directory_alias_key("react", "@pika/react")
        False
    """

    return (
        key.startswith("/")
        and key.endswith("/")
        and (posixpath.isabs(to_posix(target)) or Path(target).is_absolute())
    )


def _resolve_directory_target(root: str, target: str) -> str | None:
    """Pick the directory a directory alias points to.

    Touches the filesystem.
    """

    from_root = join_path(root, to_posix(target))
    if is_dir(from_root):
        return from_root
    if is_dir(target):
        return join_path(to_posix(target))
    return None


def _register(
    table: AliasTable,
    alias: Mapping[str, str],
    *,
    root: str,
    logger: Logger,
) -> None:
    for key, target in alias.items():
        if not is_directory_alias_key(key, target):
            table.literal[key] = target
            continue

        directory = _resolve_directory_target(root, target)
        if directory is None:
            logger.debug("alias-dropped", key=key, target=str(target))
            continue

        entry = DirectoryAliasResolver(key=key, target=directory)
        existing = next(
            (
                index
                for index, current in enumerate(table.resolvers)
                if current.key == key
            ),
            None,
        )
        if existing is None:
            table.resolvers.append(entry)
        else:
            table.resolvers[existing] = entry
        table.directories[key] = directory
        logger.debug("alias-directory", key=key, target=directory)


def build_alias_table(
    root: str,
    resolvers: Iterable[Resolver] = (),
    user_alias: Mapping[str, str] | None = None,
    *,
    logger: Logger | None = None,
) -> AliasTable:
    """Build the alias table from resolver aliases followed by user aliases.

    User aliases are registered last so they override same-key aliases
    contributed by resolvers. Directory aliases whose target does not exist
    either under ``root`` or as given are dropped without error.

    Touches the filesystem.

    Example:
        >>> table = build_alias_table("/proj", user_alias={"react": "preact"})
        >>> table.literal
        {'react': 'preact'}
    """

    log = logger or get_logger(__name__, component="alias-table")
    table = AliasTable()
    for resolver in resolvers:
        mapping = resolver.alias_mapping()
        if mapping:
            _register(table, mapping, root=root, logger=log)
    if user_alias:
        _register(table, user_alias, root=root, logger=log)
    return table
