"""Resolver entry types and shared constants."""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Union

from modresolve.core.paths import join_path

MODULE_PREFIX = "/@modules/"
ENV_PUBLIC_PATH = "/modresolve/env"
OPTIMIZE_CACHE_DIR = "node_modules/.modresolve_opt_cache"
PUBLIC_DIR_NAME = "public"
SUPPORTED_EXTS: tuple[str, ...] = (
    ".mjs",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".json",
)
MAIN_FIELDS: tuple[str, ...] = (
    "module",
    "jsnext",
    "jsnext:main",
    "browser",
    "main",
)

AliasFunction = Callable[[str], Union[str, None]]
AliasSpec = Union[Mapping[str, str], AliasFunction, None]
RequestToFile = Callable[[str, str], Union[str, None]]
FileToRequest = Callable[[str, str], Union[str, None]]


class Resolver:
    """Base class for entries in the resolver chain.

    Each hook returns ``None`` to decline so the chain moves on to the next
    entry. ``alias`` may be a mapping (folded into the alias table when the
    resolver is created) or a callable consulted by
    :meth:`ModuleResolver.alias`.
    """

    alias: AliasSpec = None

    def request_to_file(self, public_path: str, root: str) -> str | None:
        return None

    def file_to_request(self, file_path: str, root: str) -> str | None:
        return None

    def alias_mapping(self) -> Mapping[str, str] | None:
        """Return the mapping-valued alias table, if any."""

        if isinstance(self.alias, Mapping):
            return self.alias
        return None

    def lookup_alias(self, module_id: str) -> str | None:
        """Apply a callable alias to ``module_id``."""

        if self.alias is None or isinstance(self.alias, Mapping):
            return None
        return self.alias(module_id) or None


@dataclass(slots=True)
class FunctionResolver(Resolver):
    """Resolver built from plain callables.

    Example:
        >>> entry = FunctionResolver(
        ...     to_file=lambda p, root: "/src/x.js" if p == "/x" else None,
        ... )
        >>> entry.request_to_file("/x", "/proj")
        '/src/x.js'
    """

    to_file: RequestToFile | None = None
    to_request: FileToRequest | None = None
    alias: AliasSpec = None

    def request_to_file(self, public_path: str, root: str) -> str | None:
        if self.to_file is None:
            return None
        return self.to_file(public_path, root) or None

    def file_to_request(self, file_path: str, root: str) -> str | None:
        if self.to_request is None:
            return None
        return self.to_request(file_path, root) or None


@dataclass(frozen=True, slots=True)
class DirectoryAliasResolver(Resolver):
    """Map a request prefix such as ``/@foo/`` onto a filesystem directory.

    Example:
        >>> entry = DirectoryAliasResolver(key="/@foo/", target="/proj/foo")
        >>> entry.request_to_file("/@foo/util.ts", "/proj")
        '/proj/foo/util.ts'
        >>> entry.file_to_request("/proj/foo/util.ts", "/proj")
        '/@foo/util.ts'
    """

    key: str
    target: str

    def request_to_file(self, public_path: str, root: str) -> str | None:
        if not public_path.startswith(self.key):
            return None
        return join_path(self.target, public_path[len(self.key) :])

    def file_to_request(self, file_path: str, root: str) -> str | None:
        if not file_path.startswith(self.target + "/"):
            return None
        return self.key + posixpath.relpath(file_path, self.target)


@dataclass(frozen=True, slots=True)
class MountResolver(Resolver):
    """Declarative resolver mounting several request prefixes on directories.

    The first mount whose prefix matches wins for requests; the first mount
    declared for a directory wins when mapping files back to requests.
    """

    mounts: tuple[DirectoryAliasResolver, ...] = ()
    alias: Mapping[str, str] | None = field(default=None)

    def request_to_file(self, public_path: str, root: str) -> str | None:
        for mount in self.mounts:
            resolved = mount.request_to_file(public_path, root)
            if resolved:
                return resolved
        return None

    def file_to_request(self, file_path: str, root: str) -> str | None:
        for mount in self.mounts:
            request = mount.file_to_request(file_path, root)
            if request:
                return request
        return None


@dataclass(frozen=True, slots=True)
class RelativeRequest:
    """Result of resolving an importee against its importer.

    ``query`` is everything from the first ``?`` or ``#``, fragment included.
    """

    pathname: str
    query: str = ""

    def __str__(self) -> str:
        return self.pathname + self.query


__all__ = [
    "AliasFunction",
    "AliasSpec",
    "DirectoryAliasResolver",
    "ENV_PUBLIC_PATH",
    "FunctionResolver",
    "MAIN_FIELDS",
    "MODULE_PREFIX",
    "MountResolver",
    "OPTIMIZE_CACHE_DIR",
    "PUBLIC_DIR_NAME",
    "RelativeRequest",
    "Resolver",
    "SUPPORTED_EXTS",
]
