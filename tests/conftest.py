"""Shared pytest fixtures for resolver tests."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from modresolve.core import paths
from modresolve.resolver import ModuleResolver, create_resolver
from modresolve.resolver import optimizer, service

TreeBuilder = Callable[..., Path]


def _render(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content)


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeBuilder:
    """Return a helper that writes ``{relative_path: content}`` under a root.

    Non-string contents (``package.json`` payloads) are serialized as JSON.
    The root defaults to ``<tmp>/project`` with symlinks resolved so paths
    compare equal to the realpath'd node-module results.
    """

    def _build(
        files: Mapping[str, Any],
        *,
        root: Path | None = None,
    ) -> Path:
        base = root or tmp_path.resolve() / "project"
        base.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            path = base / relative
            if relative.endswith("/"):
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_render(content), encoding="utf-8")
        return base

    return _build


SAMPLE_FILES: dict[str, Any] = {
    "package.json": {"name": "app", "version": "1.0.0"},
    "index.html": "<script type=module src=/src/main.ts></script>",
    "src/main.ts": "import './app'",
    "src/app.jsx": "export default () => null",
    "src/util.ts": "export const util = 1",
    "src/util/index.js": "export const util = 2",
    "src/components/index.tsx": "export {}",
    "public/favicon.ico": "ico",
    "public/robots.txt": "User-agent: *",
    "foo/util.ts": "export const foo = 1",
    "packages/foo/util.ts": "export * from '../shared/x'",
    "packages/shared/x.ts": "export const x = 1",
    "node_modules/lodash-es/package.json": {
        "name": "lodash-es",
        "module": "lodash.js",
        "main": "lodash.cjs",
    },
    "node_modules/lodash-es/lodash.js": "export default {}",
    "node_modules/lodash-es/lodash.cjs": "module.exports = {}",
    "node_modules/lodash-es/fp.js": "export default {}",
    "node_modules/@babel/runtime/package.json": {
        "name": "@babel/runtime",
        "main": "index.js",
    },
    "node_modules/@babel/runtime/index.js": "export {}",
    "node_modules/@babel/runtime/helpers/esm/package.json": {
        "type": "module",
    },
    "node_modules/@babel/runtime/helpers/esm/typeof.js": "export {}",
    "node_modules/vue/package.json": {"name": "vue", "main": "index.js"},
    "node_modules/vue/index.js": "module.exports = {}",
    "node_modules/.modresolve_opt_cache/vue.js": "export default {}",
}


@pytest.fixture
def sample_root(make_tree: TreeBuilder) -> Path:
    """Create a small dev-server project with sources and dependencies."""

    return make_tree(SAMPLE_FILES)


@pytest.fixture
def resolver(sample_root: Path) -> ModuleResolver:
    """Resolver over :func:`sample_root` with a ``/@foo/`` directory alias."""

    return create_resolver(sample_root, alias={"/@foo/": "/foo"})


@pytest.fixture
def confine_manifests(monkeypatch: pytest.MonkeyPatch) -> Callable[[Path], None]:
    """Return a helper keeping ``package.json`` lookups inside a tree.

    Manifests found above ``root`` (for example in ``/tmp``) are ignored so
    results do not depend on the host machine.
    """

    def _confine(root: Path) -> None:
        boundary = root.as_posix().rstrip("/") + "/"

        def _lookup(start: str, names) -> str | None:
            found = paths.lookup_file(start, names)
            if found is None or not found.startswith(boundary):
                return None
            return found

        monkeypatch.setattr(service, "lookup_file", _lookup)
        monkeypatch.setattr(optimizer, "lookup_file", _lookup)

    return _confine
