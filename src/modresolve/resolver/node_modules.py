"""Resolve bare module ids to files via the optimizer cache or node_modules."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from modresolve.core.logging import Logger, get_logger
from modresolve.core.paths import is_file, join_path, to_posix
from modresolve.resolver.models import MAIN_FIELDS, SUPPORTED_EXTS
from modresolve.resolver.optimizer import MANIFEST_NAME, OptimizerCacheLocator

__all__ = ["NodeModuleLocator", "read_package_entry"]

_NODE_MODULES = "node_modules"


def read_package_entry(manifest: Path) -> str | None:
    """Return the entry file declared by a ``package.json``.

    The first string-valued field among :data:`MAIN_FIELDS` wins, so an
    object-valued ``browser`` map falls through to ``main``. A leading UTF-8
    byte-order mark is ignored.

    Raises:
        OSError: If the manifest cannot be read.
        ValueError: If the manifest is not valid JSON.
    """

    payload: Any = json.loads(manifest.read_text(encoding="utf-8-sig"))
    if not isinstance(payload, dict):
        return None
    for name in MAIN_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and value:
            return value
    return None


def _iter_node_modules_dirs(start: Path) -> Iterator[Path]:
    current = start
    while True:
        if current.name != _NODE_MODULES:
            yield current / _NODE_MODULES
        parent = current.parent
        if parent == current:
            return
        current = parent


def _load_as_file(candidate: Path) -> Path | None:
    if is_file(candidate):
        return candidate
    for ext in SUPPORTED_EXTS:
        with_ext = candidate.with_name(candidate.name + ext)
        if is_file(with_ext):
            return with_ext
    return None


class NodeModuleLocator:
    """Find files for bare module ids, memoized per ``(root, id)``.

    Only successful lookups are memoized, so packages installed or
    pre-bundled after a miss are picked up on the next request.
    """

    def __init__(
        self,
        *,
        optimizer: OptimizerCacheLocator | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._optimizer = optimizer or OptimizerCacheLocator()
        self._optimized: dict[tuple[str, str], str] = {}
        self._resolved: dict[tuple[str, str], str] = {}
        self._logger = logger or get_logger(
            __name__,
            component="node-modules",
        )

    @property
    def optimizer(self) -> OptimizerCacheLocator:
        return self._optimizer

    def resolve_optimized_module(self, root: str, module_id: str) -> str | None:
        """Return the pre-bundled file for ``module_id`` if one exists.

        Looks for ``<cache>/<id>`` then ``<cache>/<id>.js``. Touches the
        filesystem.
        """

        key = (to_posix(root), module_id)
        cached = self._optimized.get(key)
        if cached is not None:
            return cached

        cache_dir = self._optimizer.locate(key[0])
        if cache_dir is None:
            return None

        for name in (module_id, f"{module_id}.js"):
            candidate = join_path(cache_dir, name)
            if is_file(candidate):
                self._optimized[key] = candidate
                self._logger.debug(
                    "optimized-module",
                    module_id=module_id,
                    file=candidate,
                )
                return candidate
        return None

    def resolve_node_module_file(self, root: str, module_id: str) -> str | None:
        """Resolve ``module_id`` from ``root`` using package conventions.

        Failures are reported as ``None``; the caller decides how to surface
        the missing module. Touches the filesystem.
        """

        key = (to_posix(root), module_id)
        cached = self._resolved.get(key)
        if cached is not None:
            return cached

        if not module_id or module_id.startswith((".", "/")):
            return None

        for directory in _iter_node_modules_dirs(Path(root)):
            found = self._resolve_in(directory / module_id)
            if found is not None:
                resolved = to_posix(found.resolve(strict=False))
                self._resolved[key] = resolved
                self._logger.debug(
                    "node-module",
                    module_id=module_id,
                    file=resolved,
                )
                return resolved

        self._logger.debug("node-module-missing", module_id=module_id)
        return None

    def _resolve_in(self, candidate: Path) -> Path | None:
        return _load_as_file(candidate) or self._load_as_directory(
            candidate,
            seen=set(),
        )

    def _load_as_directory(
        self,
        directory: Path,
        *,
        seen: set[Path],
    ) -> Path | None:
        if directory in seen:
            return None
        seen.add(directory)

        manifest = directory / MANIFEST_NAME
        if is_file(manifest):
            try:
                entry = read_package_entry(manifest)
            except (OSError, ValueError) as exc:
                self._logger.debug(
                    "package-manifest-unreadable",
                    manifest=to_posix(manifest),
                    error=str(exc),
                )
                entry = None
            if entry is not None:
                if entry in {".", "./"}:
                    entry = "index"
                target = Path(join_path(to_posix(directory), entry))
                found = _load_as_file(target) or self._load_as_directory(
                    target,
                    seen=seen,
                )
                if found is not None:
                    return found

        return _load_as_file(directory / "index")
