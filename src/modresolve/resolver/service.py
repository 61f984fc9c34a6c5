"""Bidirectional request/file resolution for the dev server.

:class:`ModuleResolver` owns every cache it consults, so independent
instances never share state. All lookups are synchronous; methods that may
probe the filesystem say so in their docstrings.
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Mapping
from pathlib import Path
from typing import Iterable, Sequence

from modresolve.core.logging import Logger, get_logger
from modresolve.core.paths import (
    clean_url,
    is_file,
    join_path,
    lookup_file,
    parse_node_module_id,
    split_url_suffix,
    to_posix,
)
from modresolve.resolver.alias import AliasTable, build_alias_table
from modresolve.resolver.errors import (
    PackageManifestNotFoundError,
    ResolverConsistencyError,
)
from modresolve.resolver.models import (
    ENV_PUBLIC_PATH,
    MODULE_PREFIX,
    PUBLIC_DIR_NAME,
    SUPPORTED_EXTS,
    RelativeRequest,
    Resolver,
)
from modresolve.resolver.node_modules import NodeModuleLocator
from modresolve.resolver.optimizer import MANIFEST_NAME, OptimizerCacheLocator

__all__ = ["ModuleResolver", "create_resolver", "resolve_file_postfix"]


def _exists(path: str) -> bool:
    try:
        return Path(path).exists()
    except OSError:
        return False


def resolve_file_postfix(
    file_path: str,
    *,
    directory_only: bool = False,
) -> str | None:
    """Return the suffix that turns a fuzzy path into an existing file.

    ``/src/app`` may stand for ``/src/app.ts`` and ``/src/dir`` for
    ``/src/dir/index.js``. For each extension in :data:`SUPPORTED_EXTS` the
    bare suffix is probed before the ``/index`` form. With ``directory_only``
    (a request ending in ``/``) only the ``/index`` form is probed. ``None``
    means the path is already a file or nothing matched. Touches the
    filesystem.
    """

    if is_file(file_path):
        return None
    for ext in SUPPORTED_EXTS:
        if not directory_only and is_file(file_path + ext):
            return ext
        if is_file(join_path(file_path, f"index{ext}")):
            return f"/index{ext}"
    return None


class ModuleResolver:
    """Translate public request paths to files and back.

    Entries are consulted in registration order: user resolvers first, then
    the entries synthesized from directory aliases. Built-in handling of
    ``/@modules/`` references, the ``public/`` directory and the project root
    runs only when every entry declines.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        resolvers: Iterable[Resolver] = (),
        alias: Mapping[str, str] | None = None,
        *,
        node_modules: NodeModuleLocator | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._root = to_posix(os.path.abspath(root))
        self._logger = logger or get_logger(__name__, component="resolver")
        user_resolvers = list(resolvers)
        self._alias_table = build_alias_table(
            self._root,
            user_resolvers,
            alias,
            logger=self._logger,
        )
        self._resolvers: tuple[Resolver, ...] = (
            *user_resolvers,
            *self._alias_table.resolvers,
        )
        self._node_modules = node_modules or NodeModuleLocator(
            logger=self._logger,
        )
        self._request_cache: dict[str, str] = {}
        self._file_cache: dict[str, str] = {}
        self._module_files: dict[str, str] = {}
        self._file_modules: dict[str, str] = {}
        self._public_dir = join_path(self._root, PUBLIC_DIR_NAME)

    @property
    def root(self) -> str:
        return self._root

    @property
    def resolvers(self) -> Sequence[Resolver]:
        return self._resolvers

    @property
    def alias_table(self) -> AliasTable:
        return self._alias_table

    @property
    def optimizer(self) -> OptimizerCacheLocator:
        return self._node_modules.optimizer

    def request_to_file(self, public_path: str) -> str:
        """Resolve a public request path to a file path.

        Query and fragment suffixes are ignored. The returned path is not
        guaranteed to exist; reading it reports the eventual not-found error.
        Touches the filesystem.
        """

        clean = clean_url(public_path)
        cached = self._request_cache.get(clean)
        if cached is not None:
            return cached

        resolved: str | None = None
        for entry in self._resolvers:
            candidate = entry.request_to_file(clean, self._root)
            if candidate:
                resolved = to_posix(candidate)
                break
        if resolved is None:
            resolved = self._default_request_to_file(clean)

        postfix = resolve_file_postfix(
            resolved,
            directory_only=clean.endswith("/"),
        )
        if postfix:
            fuzzy = resolved
            if postfix.startswith("/"):
                resolved = join_path(resolved, postfix)
            else:
                resolved += postfix
            self._logger.debug("resolve-postfix", source=fuzzy, file=resolved)

        self._request_cache[clean] = resolved
        return resolved

    def file_to_request(self, file_path: str | os.PathLike[str]) -> str:
        """Return the public path a browser should use to import a file."""

        path = to_posix(file_path)
        cached = self._file_cache.get(path)
        if cached is not None:
            return cached

        request: str | None = None
        for entry in self._resolvers:
            candidate = entry.file_to_request(path, self._root)
            if candidate:
                request = candidate
                break
        if request is None:
            request = self._file_modules.get(path)
        if request is None:
            relative = posixpath.relpath(path, self._root)
            if relative.startswith(f"{PUBLIC_DIR_NAME}/"):
                relative = relative[len(PUBLIC_DIR_NAME) + 1 :]
            request = f"/{relative}"

        self._file_cache[path] = request
        return request

    def normalize_public_path(self, public_path: str) -> str:
        """Turn a fuzzy public path into the exact path to re-request.

        Missing extensions and ``/index`` files are filled in. Node-module
        references stay under ``/@modules/`` and point at the concrete file
        inside their package.

        Raises:
            ResolverConsistencyError: If the normalized path resolves to a
                different file than ``public_path``.
            PackageManifestNotFoundError: If a deep package import resolves to
                a file outside of any package.

        Touches the filesystem.
        """

        if public_path == ENV_PUBLIC_PATH:
            return public_path

        clean, suffix = split_url_suffix(public_path)

        if not clean.startswith(MODULE_PREFIX):
            normalized = self.file_to_request(self.request_to_file(clean))
            return self._finalize(public_path, normalized + suffix)

        file_path = self.request_to_file(clean)
        cached_relative = self.optimizer.contains(self._root, file_path)
        if cached_relative is not None:
            normalized = posixpath.join(MODULE_PREFIX, cached_relative)
            return self._finalize(public_path, normalized + suffix)

        module = parse_node_module_id(clean[len(MODULE_PREFIX) :])
        if not module.in_package_path:
            return public_path

        in_package = self._package_relative_path(
            public_path,
            file_path,
            module.in_package_path,
        )
        parts = (
            MODULE_PREFIX.rstrip("/"),
            module.scope,
            module.name,
            in_package,
        )
        normalized = "/".join(part for part in parts if part)
        return self._finalize(public_path, normalized + suffix)

    def resolve_relative_request(
        self,
        importer: str,
        importee: str,
    ) -> RelativeRequest:
        """Resolve ``importee`` relative to the ``importer`` request path.

        Relative imports that climb out of a directory alias are recomputed in
        file space so they point at the real file location.
        The returned ``query`` holds the importee's whole suffix, so a
        ``#fragment`` is carried along with any ``?query``.
        """

        clean_importee, query = split_url_suffix(importee)
        resolved = clean_importee

        if clean_importee.startswith("."):
            importer_path = clean_url(importer)
            resolved = join_path(
                posixpath.dirname(importer_path),
                clean_importee,
            )
            match = self._alias_table.directory_for(importer_path)
            if match is not None and not resolved.startswith(match[0]):
                importer_file = self.request_to_file(importer_path)
                importee_file = join_path(
                    posixpath.dirname(importer_file),
                    clean_importee,
                )
                resolved = clean_url(self.file_to_request(importee_file))

        if clean_importee.endswith("/") and not resolved.endswith("/"):
            resolved += "/"
        return RelativeRequest(pathname=resolved, query=query)

    def is_public_request(self, public_path: str) -> bool:
        """Return ``True`` when the request is served from ``<root>/public``.

        Touches the filesystem.
        """

        file_path = self.request_to_file(public_path)
        return file_path == self._public_dir or file_path.startswith(
            self._public_dir + "/"
        )

    def alias(self, module_id: str) -> str | None:
        """Return the literal alias for ``module_id``, if any."""

        aliased = self._alias_table.literal.get(module_id)
        if aliased:
            return aliased
        for entry in self._resolvers:
            aliased = entry.lookup_alias(module_id)
            if aliased:
                return aliased
        return None

    def _default_request_to_file(self, public_path: str) -> str:
        if public_path.startswith(MODULE_PREFIX):
            module_file = self._resolve_module_file(
                public_path[len(MODULE_PREFIX) :]
            )
            if module_file is not None:
                return module_file

        relative = public_path.lstrip("/")
        public_file = join_path(self._public_dir, relative)
        if _exists(public_file):
            return public_file
        return join_path(self._root, relative)

    def _resolve_module_file(self, module_id: str) -> str | None:
        cached = self._module_files.get(module_id)
        if cached is not None:
            return cached

        optimized = self._node_modules.resolve_optimized_module(
            self._root,
            module_id,
        )
        if optimized is not None:
            return optimized

        node_file = self._node_modules.resolve_node_module_file(
            self._root,
            module_id,
        )
        if node_file is None:
            return None
        self._module_files[module_id] = node_file
        self._file_modules.setdefault(node_file, MODULE_PREFIX + module_id)
        return node_file

    def _package_relative_path(
        self,
        public_path: str,
        file_path: str,
        in_package_path: str,
    ) -> str:
        """Path of ``file_path`` inside the package owning ``in_package_path``.

        Packages may nest extra ``package.json`` files (for example
        ``@babel/runtime/helpers/esm/package.json``), so manifests are walked
        upward until the relative path starts with the requested subpath.
        """

        relative = ""
        search_from = file_path
        while not relative.startswith(in_package_path):
            manifest = lookup_file(search_from, [MANIFEST_NAME])
            if manifest is None:
                self._logger.error(
                    "package-manifest-missing",
                    public_path=public_path,
                    file=file_path,
                )
                raise PackageManifestNotFoundError(public_path, file_path)
            package_dir = posixpath.dirname(manifest)
            relative = posixpath.relpath(file_path, package_dir)
            parent = posixpath.dirname(package_dir)
            if parent == package_dir and not relative.startswith(
                in_package_path
            ):
                raise PackageManifestNotFoundError(public_path, file_path)
            search_from = parent
        return relative

    def _finalize(self, public_path: str, normalized: str) -> str:
        expected = self.request_to_file(public_path)
        actual = self.request_to_file(normalized)
        if actual != expected:
            self._logger.error(
                "normalize-check-failed",
                public_path=public_path,
                normalized=normalized,
                expected=expected,
                actual=actual,
            )
            raise ResolverConsistencyError(
                public_path,
                normalized,
                expected,
                actual,
            )
        return normalized


def create_resolver(
    root: str | os.PathLike[str],
    resolvers: Iterable[Resolver] = (),
    alias: Mapping[str, str] | None = None,
    *,
    logger: Logger | None = None,
) -> ModuleResolver:
    """Build a :class:`ModuleResolver` with fresh caches.

    Example:
        >>> resolver = create_resolver("/proj", alias={"react": "preact"})
        >>> resolver.alias("react")
        'preact'
    """

    return ModuleResolver(root, resolvers, alias, logger=logger)
