"""
forms_db.storage

Filesystem side of the catalog.

Provides:

    - PathResolver / StoragePathResolver: root-relative <-> absolute paths
    - media_path_for: the ``-media`` folder naming convention
    - ArtifactJanitor: best-effort removal of files and media folders
"""

from .paths import (
    FORMS,
    CACHE,
    CACHE_SUFFIX,
    MEDIA_SUFFIX,
    PathResolver,
    StoragePathResolver,
    media_path_for,
)
from .janitor import ArtifactJanitor

__all__ = [
    "FORMS",
    "CACHE",
    "CACHE_SUFFIX",
    "MEDIA_SUFFIX",
    "PathResolver",
    "StoragePathResolver",
    "media_path_for",
    "ArtifactJanitor",
]
