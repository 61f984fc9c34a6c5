"""Module resolution package for :mod:`modresolve`."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import (
    PackageManifestNotFoundError,
    ResolverConfigError,
    ResolverConsistencyError,
    ResolverError,
    ResolverInternalError,
)
from .models import (
    DirectoryAliasResolver,
    ENV_PUBLIC_PATH,
    FunctionResolver,
    MAIN_FIELDS,
    MODULE_PREFIX,
    MountResolver,
    OPTIMIZE_CACHE_DIR,
    RelativeRequest,
    Resolver,
    SUPPORTED_EXTS,
)

if TYPE_CHECKING:  # pragma: no cover - imports only used for typing
    from .alias import AliasTable, build_alias_table
    from .node_modules import NodeModuleLocator
    from .optimizer import OptimizerCacheLocator
    from .service import ModuleResolver, create_resolver


__all__ = [
    "AliasTable",
    "DirectoryAliasResolver",
    "ENV_PUBLIC_PATH",
    "FunctionResolver",
    "MAIN_FIELDS",
    "MODULE_PREFIX",
    "ModuleResolver",
    "MountResolver",
    "NodeModuleLocator",
    "OPTIMIZE_CACHE_DIR",
    "OptimizerCacheLocator",
    "PackageManifestNotFoundError",
    "RelativeRequest",
    "Resolver",
    "ResolverConfigError",
    "ResolverConsistencyError",
    "ResolverError",
    "ResolverInternalError",
    "SUPPORTED_EXTS",
    "build_alias_table",
    "create_resolver",
]


_LAZY_IMPORTS = {
    "AliasTable": "alias",
    "build_alias_table": "alias",
    "NodeModuleLocator": "node_modules",
    "OptimizerCacheLocator": "optimizer",
    "ModuleResolver": "service",
    "create_resolver": "service",
}


def __getattr__(name: str) -> Any:  # pragma: no cover - trivial delegation
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(
            f"module 'modresolve.resolver' has no attribute {name!r}"
        )

    module = __import__(f"modresolve.resolver.{module_name}", fromlist=[name])
    return getattr(module, name)
