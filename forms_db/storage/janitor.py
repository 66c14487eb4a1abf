"""
Best-effort removal of form artifacts.

A form owns up to three things on disk: its definition file, its cache
artifact and its media folder. When a record is deleted or its files are
superseded, those artifacts are removed here.

All cleanup operations are best-effort and error-tolerant: failures are
logged and reported through the return value, never raised, so a metadata
mutation is never blocked by the filesystem.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class ArtifactJanitor:
    """
    Deletes files and one-level directory bundles.

    Media folders are one level deep by convention: their immediate
    children are removed one by one, and any nested directory is removed
    as a single unit.
    """

    def remove_file_or_tree(self, path: Optional[str]) -> bool:
        """
        Remove a file or a directory bundle.

        Parameters
        ----------
        path : Optional[str]
            Absolute path to remove. None and missing paths are no-ops.

        Returns
        -------
        bool
            True when nothing is left at ``path``.
        """
        if not path or not os.path.lexists(path):
            return True

        ok = True

        if os.path.isdir(path) and not os.path.islink(path):
            try:
                children = sorted(os.listdir(path))
            except OSError:
                logger.warning("Could not list directory %s", path, exc_info=True)
                children = []
                ok = False

            for name in children:
                child = os.path.join(path, name)
                logger.info("attempting to delete file: %s", child)
                ok = self._remove_entry(child) and ok

            logger.info("attempting to delete file: %s", path)
            try:
                os.rmdir(path)
            except OSError:
                logger.warning("Could not delete directory %s", path, exc_info=True)
                ok = False
            return ok

        logger.info("attempting to delete file: %s", path)
        return self._remove_entry(path)

    def remove_many(self, paths: Iterable[Optional[str]]) -> bool:
        """
        Remove several artifacts, continuing past failures.
        """
        ok = True
        for path in paths:
            ok = self.remove_file_or_tree(path) and ok
        return ok

    # ------------------------------------------------------------------
    # Internal helper
    # ------------------------------------------------------------------

    def _remove_entry(self, path: str) -> bool:
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except FileNotFoundError:
            return True
        except OSError:
            logger.warning("Could not delete %s", path, exc_info=True)
            return False
        return True


__all__ = ["ArtifactJanitor"]
