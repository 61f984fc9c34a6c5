"""Tests for :mod:`modresolve.resolver.optimizer`."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from modresolve.resolver import OPTIMIZE_CACHE_DIR, OptimizerCacheLocator


def test_locate_uses_nearest_manifest(make_tree: Callable[..., Path]) -> None:
    root = make_tree({"package.json": {"name": "app"}, "src/main.ts": ""})
    locator = OptimizerCacheLocator()

    cache_dir = locator.locate((root / "src").as_posix())

    assert cache_dir == (root / OPTIMIZE_CACHE_DIR).as_posix()


def test_locate_memoizes_per_root(make_tree: Callable[..., Path]) -> None:
    root = make_tree({"package.json": {"name": "app"}})
    locator = OptimizerCacheLocator()

    first = locator.locate(root.as_posix())
    (root / "package.json").unlink()

    assert locator.locate(root.as_posix()) == first


def test_locate_accepts_known_manifest(tmp_path: Path) -> None:
    locator = OptimizerCacheLocator()
    manifest = (tmp_path / "elsewhere" / "package.json").as_posix()

    cache_dir = locator.locate("/srv/app", manifest)

    assert cache_dir == f"{(tmp_path / 'elsewhere').as_posix()}/{OPTIMIZE_CACHE_DIR}"


def test_contains_reports_paths_inside_cache(make_tree: Callable[..., Path]) -> None:
    root = make_tree({"package.json": {"name": "app"}})
    locator = OptimizerCacheLocator()
    cache_dir = root / OPTIMIZE_CACHE_DIR

    inside = (cache_dir / "vue.js").as_posix()
    nested = (cache_dir / "chunks" / "dep.js").as_posix()
    outside = (root / "node_modules" / "vue" / "index.js").as_posix()

    assert locator.contains(root.as_posix(), inside) == "vue.js"
    assert locator.contains(root.as_posix(), nested) == "chunks/dep.js"
    assert locator.contains(root.as_posix(), outside) is None
