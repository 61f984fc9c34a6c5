"""Tests for request/file mapping in :mod:`modresolve.resolver.service`."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from modresolve.resolver import (
    FunctionResolver,
    ModuleResolver,
    NodeModuleLocator,
    create_resolver,
)
from modresolve.resolver.service import resolve_file_postfix


def _p(root: Path, relative: str) -> str:
    return (root / relative).as_posix()


@pytest.mark.parametrize(
    ("request_path", "relative"),
    [
        ("/src/main", "src/main.ts"),
        ("/src/main.ts", "src/main.ts"),
        ("/src/app", "src/app.jsx"),
        ("/src/components", "src/components/index.tsx"),
        ("/index.html", "index.html"),
        ("/src/main?import", "src/main.ts"),
        ("/src/main#hmr", "src/main.ts"),
    ],
)
def test_request_to_file_fills_in_extensions(
    resolver: ModuleResolver,
    sample_root: Path,
    request_path: str,
    relative: str,
) -> None:
    assert resolver.request_to_file(request_path) == _p(sample_root, relative)


def test_postfix_tries_each_extension_before_the_next(sample_root: Path) -> None:
    # ``util.ts`` and ``util/index.js`` both exist; ``.js`` is probed first.
    target = _p(sample_root, "src/util")

    assert resolve_file_postfix(target) == "/index.js"
    assert resolve_file_postfix(_p(sample_root, "src/main.ts")) is None
    assert resolve_file_postfix(_p(sample_root, "src/missing")) is None


def test_request_to_file_logs_postfix(sample_root: Path) -> None:
    with capture_logs() as logs:
        resolver = create_resolver(sample_root)
        resolver.request_to_file("/src/main")

    events = [entry for entry in logs if entry["event"] == "resolve-postfix"]
    assert len(events) == 1
    assert events[0]["log_level"] == "debug"
    assert events[0]["component"] == "resolver"
    assert events[0]["source"] == _p(sample_root, "src/main")
    assert events[0]["file"] == _p(sample_root, "src/main.ts")


def test_public_dir_is_served_from_root(
    resolver: ModuleResolver,
    sample_root: Path,
) -> None:
    favicon = _p(sample_root, "public/favicon.ico")

    assert resolver.request_to_file("/favicon.ico") == favicon
    assert resolver.file_to_request(favicon) == "/favicon.ico"


def test_missing_files_resolve_under_root(
    resolver: ModuleResolver,
    sample_root: Path,
) -> None:
    assert resolver.request_to_file("/nope/missing.js") == (
        _p(sample_root, "nope/missing.js")
    )


def test_file_to_request_is_root_relative(
    resolver: ModuleResolver,
    sample_root: Path,
) -> None:
    assert resolver.file_to_request(_p(sample_root, "src/main.ts")) == (
        "/src/main.ts"
    )
    assert resolver.file_to_request(sample_root / "src" / "app.jsx") == (
        "/src/app.jsx"
    )


def test_directory_alias_maps_both_directions(
    resolver: ModuleResolver,
    sample_root: Path,
) -> None:
    util = _p(sample_root, "foo/util.ts")

    assert resolver.request_to_file("/@foo/util") == util
    assert resolver.file_to_request(util) == "/@foo/util.ts"


@pytest.mark.parametrize(
    "relative",
    ["src/main.ts", "src/app.jsx", "foo/util.ts", "public/robots.txt"],
)
def test_file_request_round_trip(
    resolver: ModuleResolver,
    sample_root: Path,
    relative: str,
) -> None:
    file_path = _p(sample_root, relative)

    assert resolver.request_to_file(resolver.file_to_request(file_path)) == (
        file_path
    )


def test_user_resolvers_run_before_alias_and_defaults(
    sample_root: Path,
) -> None:
    calls: list[str] = []

    def to_file(public_path: str, root: str) -> str | None:
        calls.append(public_path)
        if public_path.startswith("/@foo/"):
            return f"{root}/src/{public_path[len('/@foo/'):]}"
        return None

    resolver = create_resolver(
        sample_root,
        [FunctionResolver(to_file=to_file)],
        {"/@foo/": "/foo"},
    )

    assert resolver.request_to_file("/@foo/main") == _p(
        sample_root, "src/main.ts"
    )
    assert resolver.request_to_file("/src/app") == _p(
        sample_root, "src/app.jsx"
    )
    assert calls == ["/@foo/main", "/src/app"]


def test_empty_resolver_results_decline(sample_root: Path) -> None:
    resolver = create_resolver(
        sample_root,
        [FunctionResolver(to_file=lambda p, r: "", to_request=lambda f, r: "")],
    )

    assert resolver.request_to_file("/src/main") == _p(sample_root, "src/main.ts")
    assert resolver.file_to_request(_p(sample_root, "src/main.ts")) == (
        "/src/main.ts"
    )


def test_results_are_cached_per_instance(
    make_tree: Callable[..., Path],
) -> None:
    root = make_tree({"src/a.js": ""})
    first = create_resolver(root)

    assert first.request_to_file("/src/a") == _p(root, "src/a.js")

    make_tree({"src/a.mjs": ""}, root=root)
    second = create_resolver(root)

    assert first.request_to_file("/src/a") == _p(root, "src/a.js")
    assert second.request_to_file("/src/a") == _p(root, "src/a.mjs")


def test_is_public_request(resolver: ModuleResolver) -> None:
    assert resolver.is_public_request("/favicon.ico")
    assert resolver.is_public_request("/robots.txt?raw")
    assert not resolver.is_public_request("/src/main")
    assert not resolver.is_public_request("/@foo/util")


def test_is_public_request_requires_directory_boundary(
    make_tree: Callable[..., Path],
) -> None:
    root = make_tree({"public/a.txt": "", "publicity/b.txt": ""})
    resolver = create_resolver(root)

    assert resolver.is_public_request("/a.txt")
    assert not resolver.is_public_request("/publicity/b.txt")


def test_alias_literal_then_callable(sample_root: Path) -> None:
    resolver = create_resolver(
        sample_root,
        [
            FunctionResolver(alias={"react": "preact"}),
            FunctionResolver(
                alias=lambda module_id: (
                    "petite-vue" if module_id == "vue" else None
                )
            ),
        ],
        {"react": "@pika/react"},
    )

    assert resolver.alias("react") == "@pika/react"
    assert resolver.alias("vue") == "petite-vue"
    assert resolver.alias("lodash") is None


def test_alias_never_uses_directory_keys(resolver: ModuleResolver) -> None:
    assert resolver.alias("/@foo/") is None


def test_absolute_directory_alias_scenario(
    make_tree: Callable[..., Path],
) -> None:
    root = make_tree({"foo-dir/util.ts": "export const util = 1"})
    target = (root / "foo-dir").as_posix()
    resolver = create_resolver(root, alias={"/@foo/": target})

    util = resolver.request_to_file("/@foo/util")

    assert util == f"{target}/util.ts"
    # The concrete extension is kept so the request re-resolves exactly.
    assert resolver.file_to_request(util) == "/@foo/util.ts"


def test_optimizer_cache_skips_node_modules_lookup(
    make_tree: Callable[..., Path],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    root = make_tree(
        {
            "package.json": {"name": "app"},
            "node_modules/.modresolve_opt_cache/lodash.js": "export {}",
            "node_modules/lodash/package.json": {"main": "lodash.js"},
            "node_modules/lodash/lodash.js": "module.exports = {}",
        }
    )

    def _fail(self, root: str, module_id: str) -> str | None:
        raise AssertionError("node_modules lookup should not run")

    monkeypatch.setattr(NodeModuleLocator, "resolve_node_module_file", _fail)
    resolver = create_resolver(root)

    assert resolver.request_to_file("/@modules/lodash") == (
        (root / "node_modules/.modresolve_opt_cache/lodash.js").as_posix()
    )


def test_trailing_slash_request_resolves_directory_index(
    make_tree: Callable[..., Path],
) -> None:
    root = make_tree(
        {
            "src/main.js": "import './components/'",
            "src/components.js": "export const sibling = 1",
            "src/components/index.js": "export const index = 1",
        }
    )
    resolver = create_resolver(root)
    index = _p(root, "src/components/index.js")

    assert resolver.request_to_file("/src/components/") == index
    assert resolver.request_to_file("/src/components") == (
        _p(root, "src/components.js")
    )
    assert resolver.normalize_public_path("/src/components/") == (
        "/src/components/index.js"
    )
    relative = resolver.resolve_relative_request("/src/main.js", "./components/")
    assert resolver.request_to_file(relative.pathname) == index


def test_postfix_directory_only_skips_sibling_files(
    make_tree: Callable[..., Path],
) -> None:
    root = make_tree(
        {"src/components.js": "", "src/components/index.ts": ""}
    )
    target = _p(root, "src/components")

    assert resolve_file_postfix(target) == ".js"
    assert resolve_file_postfix(target, directory_only=True) == "/index.ts"
