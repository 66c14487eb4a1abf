"""
Path translation between storage roots and the filesystem.

The database only ever persists root-relative, POSIX-style paths so a
catalog survives its storage directory being moved. The registry and its
callers work with absolute paths. Two roots exist:

    "forms"  -> definition files and their ``-media`` folders
    "cache"  -> compiled ``<hash>.cache`` artifacts

Example mapping:
    forms_root = "/data/forms"
    "survey.xml"              <-> "/data/forms/survey.xml"
    "survey-media"            <-> "/data/forms/survey-media"
    "/elsewhere/other.xml"    <-> "/elsewhere/other.xml"   (outside root, kept)
"""

from __future__ import annotations

import os
from typing import Optional, Protocol

from ..errors import InvalidInput

FORMS = "forms"
CACHE = "cache"

CACHE_SUFFIX = ".cache"
MEDIA_SUFFIX = "-media"


class PathResolver(Protocol):
    """Converts between root-relative storage paths and absolute paths."""

    def to_absolute(self, path: Optional[str], kind: str = FORMS) -> Optional[str]:
        ...

    def to_relative(self, path: Optional[str], kind: str = FORMS) -> Optional[str]:
        ...


class StoragePathResolver:
    """
    Default PathResolver anchored at a forms root and a cache root.

    Parameters
    ----------
    forms_root : str
        Directory holding definition files and media folders.
    cache_root : str
        Directory holding cache artifacts.
    """

    def __init__(self, forms_root: str, cache_root: str):
        self.forms_root = os.path.abspath(forms_root)
        self.cache_root = os.path.abspath(cache_root)

    # ------------------------------------------------------------------
    # Root selection
    # ------------------------------------------------------------------

    def root_for(self, kind: str) -> str:
        if kind == FORMS:
            return self.forms_root
        if kind == CACHE:
            return self.cache_root
        raise InvalidInput(f"Unknown storage kind: {kind!r}")

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def to_absolute(self, path: Optional[str], kind: str = FORMS) -> Optional[str]:
        """
        Resolve a stored path against its root.

        Absolute inputs are only normalized.
        """
        if path is None:
            return None
        root = self.root_for(kind)
        path = str(path)
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(root, path))

    def to_relative(self, path: Optional[str], kind: str = FORMS) -> Optional[str]:
        """
        Express a path relative to its root.

        Paths outside the root are returned absolute; relative inputs are
        assumed to be relative already.
        """
        if path is None:
            return None
        root = self.root_for(kind)
        path = str(path)
        if not os.path.isabs(path):
            return os.path.normpath(path).replace("\\", "/")

        path = os.path.normpath(path)
        if path == root or not path.startswith(root + os.sep):
            return path
        return os.path.relpath(path, root).replace("\\", "/")

    # ------------------------------------------------------------------
    # Naming conventions
    # ------------------------------------------------------------------

    def cache_path_for(self, content_hash: str) -> str:
        """
        Absolute path of the cache artifact for a definition hash.

        Example:
            content_hash = "9e107d9d372bb6826bd81d3542a419d6"
            -> "<cache_root>/9e107d9d372bb6826bd81d3542a419d6.cache"
        """
        return os.path.join(self.cache_root, content_hash + CACHE_SUFFIX)

    def __repr__(self) -> str:
        return (
            f"StoragePathResolver(forms_root={self.forms_root!r}, "
            f"cache_root={self.cache_root!r})"
        )


def media_path_for(form_file_path: str) -> str:
    """
    Media folder that accompanies a definition file.

    The extension is replaced by ``-media``:
        "/data/forms/survey.xml" -> "/data/forms/survey-media"
        "/data/forms/survey"     -> "/data/forms/survey-media"
    """
    stem, _ = os.path.splitext(form_file_path)
    return stem + MEDIA_SUFFIX


__all__ = [
    "FORMS",
    "CACHE",
    "CACHE_SUFFIX",
    "MEDIA_SUFFIX",
    "PathResolver",
    "StoragePathResolver",
    "media_path_for",
]
