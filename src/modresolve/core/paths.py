"""Path helpers shared by the :mod:`modresolve` resolver.

File paths are handled as POSIX-style strings internally and converted with
:mod:`pathlib` whenever the filesystem is consulted.
"""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

__all__ = [
    "NodeModuleId",
    "QUERY_PATTERN",
    "HASH_PATTERN",
    "clean_url",
    "split_url_suffix",
    "to_posix",
    "join_path",
    "is_file",
    "is_dir",
    "lookup_file",
    "parse_node_module_id",
]

QUERY_PATTERN = re.compile(r"\?.*$", re.DOTALL)
HASH_PATTERN = re.compile(r"#.*$", re.DOTALL)
_SUFFIX_PATTERN = re.compile(r"[?#].*$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class NodeModuleId:
    """Components of a bare module id such as ``@babel/runtime/helpers/esm``.

    Example:
        >>> parse_node_module_id("@babel/runtime/helpers/esm").in_package_path
        'helpers/esm'
    """

    scope: str
    name: str
    in_package_path: str


def clean_url(url: str) -> str:
    """Strip any ``#fragment`` and ``?query`` from ``url``.

    Example:
        >>> clean_url("/src/app.js?import#top")
        '/src/app.js'
    """

    return QUERY_PATTERN.sub("", HASH_PATTERN.sub("", url))


def split_url_suffix(url: str) -> tuple[str, str]:
    """Split ``url`` into its path and trailing ``?query``/``#hash`` suffix.

    Example:
        >>> split_url_suffix("/a.js?v=1")
        ('/a.js', '?v=1')
    """

    match = _SUFFIX_PATTERN.search(url)
    if match is None:
        return url, ""
    return url[: match.start()], match.group(0)


def to_posix(path: str | os.PathLike[str]) -> str:
    """Return ``path`` with forward slashes regardless of platform."""

    return Path(path).as_posix()


def join_path(base: str, *parts: str) -> str:
    """Join and normalize POSIX path segments.

    Unlike :func:`posixpath.join`, absolute later segments are appended rather
    than replacing ``base``.

    Example:
        >>> join_path("/proj", "/src/", "../lib/a.js")
        '/proj/lib/a.js'
    """

    joined = posixpath.normpath("/".join([base, *parts]))
    if joined.startswith("//"):
        # ``normpath`` keeps a leading double slash intact.
        joined = "/" + joined.lstrip("/")
    return joined


def is_file(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` when ``path`` names an existing regular file.

    Touches the filesystem.
    """

    try:
        return Path(path).is_file()
    except OSError:
        return False


def is_dir(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` when ``path`` names an existing directory.

    Touches the filesystem.
    """

    try:
        return Path(path).is_dir()
    except OSError:
        return False


def lookup_file(start: str, names: Iterable[str]) -> str | None:
    """Find the nearest file named one of ``names`` at or above ``start``.

    When ``start`` is itself a regular file the search begins at its parent
    directory. Touches the filesystem.

    Returns:
        POSIX path of the first match, or ``None`` when the filesystem root is
        reached without a hit.
    """

    candidates = tuple(names)
    current = Path(start)
    if is_file(current):
        current = current.parent
    while True:
        for name in candidates:
            candidate = current / name
            if is_file(candidate):
                return to_posix(candidate)
        parent = current.parent
        if parent == current:
            return None
        current = parent


def parse_node_module_id(module_id: str) -> NodeModuleId:
    """Split a bare module id into scope, package name and in-package path.

    Example:
        >>> parse_node_module_id("lodash/fp")
        NodeModuleId(scope='', name='lodash', in_package_path='fp')
    """

    parts = module_id.split("/")
    scope = parts.pop(0) if module_id.startswith("@") else ""
    name = parts.pop(0) if parts else ""
    return NodeModuleId(
        scope=scope,
        name=name,
        in_package_path="/".join(parts),
    )
