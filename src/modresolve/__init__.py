"""Top-level package for :mod:`modresolve`.

Bidirectional module resolution for a no-bundle ES-module dev server: map
browser import requests to files on disk and files back to requests.

Example:
    >>> from modresolve import __version__
    >>> isinstance(__version__, str)
    True
"""

from importlib import metadata

try:
    __version__ = metadata.version("modresolve")
except metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["__version__"]
