"""Core utilities shared across :mod:`modresolve` modules.

The core namespace provides configuration loading, logging setup, and the
path helpers the resolver builds on.

Example:
    >>> from modresolve.core import clean_url
    >>> clean_url("/main.js?t=1")
    '/main.js'
"""

from __future__ import annotations

from .config import (
    ResolverSettings,
    build_resolver,
    load_config,
    render_config,
)
from .logging import configure_logging, get_logger
from .paths import clean_url, lookup_file, parse_node_module_id

__all__ = [
    "ResolverSettings",
    "build_resolver",
    "clean_url",
    "configure_logging",
    "get_logger",
    "load_config",
    "lookup_file",
    "parse_node_module_id",
    "render_config",
]
