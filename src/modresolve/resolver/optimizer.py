"""Locate the pre-bundled dependency cache for a project root."""

from __future__ import annotations

import posixpath

from modresolve.core.logging import Logger, get_logger
from modresolve.core.paths import join_path, lookup_file, to_posix
from modresolve.resolver.models import OPTIMIZE_CACHE_DIR

__all__ = ["OptimizerCacheLocator", "MANIFEST_NAME"]

MANIFEST_NAME = "package.json"

_UNSET = object()


class OptimizerCacheLocator:
    """Memoize the optimizer cache directory per project root.

    The cache lives at ``<manifest-dir>/node_modules/.modresolve_opt_cache``
    where ``manifest-dir`` holds the nearest ``package.json`` at or above the
    root. Roots without a manifest memoize ``None``: no pre-bundled
    dependencies are available for them.
    """

    def __init__(self, *, logger: Logger | None = None) -> None:
        self._cache: dict[str, str | None] = {}
        self._logger = logger or get_logger(
            __name__,
            component="optimizer-cache",
        )

    def locate(self, root: str, manifest_path: str | None = None) -> str | None:
        """Return the cache directory for ``root`` or ``None``.

        Args:
            root: Absolute project root.
            manifest_path: Optional known manifest path, skipping the upward
                search on first use.

        Touches the filesystem on the first call for a given root.
        """

        key = to_posix(root)
        cached = self._cache.get(key, _UNSET)
        if cached is not _UNSET:
            return cached  # type: ignore[return-value]

        manifest = manifest_path or lookup_file(key, [MANIFEST_NAME])
        if manifest is None:
            self._logger.debug("optimizer-cache-missing", root=key)
            self._cache[key] = None
            return None

        cache_dir = join_path(
            posixpath.dirname(to_posix(manifest)),
            OPTIMIZE_CACHE_DIR,
        )
        self._logger.debug("optimizer-cache", root=key, cache_dir=cache_dir)
        self._cache[key] = cache_dir
        return cache_dir

    def contains(self, root: str, file_path: str) -> str | None:
        """Return ``file_path`` relative to the cache dir when it lies inside.

        Touches the filesystem on the first call for a given root.
        """

        cache_dir = self.locate(root)
        if cache_dir is None:
            return None
        relative = posixpath.relpath(to_posix(file_path), cache_dir)
        if relative == ".." or relative.startswith("../"):
            return None
        return relative
