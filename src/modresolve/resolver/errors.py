"""Domain-specific exceptions for module resolution."""

from __future__ import annotations

INTERNAL_ERROR_PREFIX = "[modresolve] internal error:"


class ResolverError(RuntimeError):
    """Base error for module resolution failures."""


class ResolverConfigError(ResolverError):
    """Raised when resolver configuration cannot be loaded or validated."""


class ResolverInternalError(ResolverError):
    """Raised when the resolver chain contradicts itself.

    These indicate a bug in a resolver entry rather than a missing file, so
    callers should report them as server errors instead of ``404`` responses.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"{INTERNAL_ERROR_PREFIX} {message}")


class ResolverConsistencyError(ResolverInternalError):
    """Raised when a normalized public path resolves to a different file."""

    def __init__(
        self,
        public_path: str,
        normalized: str,
        expected: str,
        actual: str,
    ) -> None:
        super().__init__(
            f"normalizing {public_path!r} produced {normalized!r}, which "
            f"resolves to {actual!r} instead of {expected!r}."
        )
        self.public_path = public_path
        self.normalized = normalized
        self.expected = expected
        self.actual = actual


class PackageManifestNotFoundError(ResolverInternalError):
    """Raised when no ``package.json`` encloses a resolved node-module file."""

    def __init__(self, public_path: str, file_path: str) -> None:
        super().__init__(
            f"can't find package.json for node module file {file_path!r} "
            f"requested as {public_path!r}."
        )
        self.public_path = public_path
        self.file_path = file_path


__all__ = [
    "INTERNAL_ERROR_PREFIX",
    "ResolverError",
    "ResolverConfigError",
    "ResolverInternalError",
    "ResolverConsistencyError",
    "PackageManifestNotFoundError",
]
