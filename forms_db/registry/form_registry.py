"""
Form Registry.

Keeps the forms table and the files it references consistent:

    - definition file   <forms_root>/survey.xml
    - cache artifact    <cache_root>/<md5>.cache
    - media folder      <forms_root>/survey-media/

There is no transaction spanning the database and the filesystem, so
ordering stands in for atomicity:

    update  old cache removed before the definition path is swapped
    delete  files removed (best effort) before the row; the row goes
            even when file removal fails

Mutations are serialized by a single re-entrant lock per registry. Reads
take no lock; each runs on its own connection.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import Conflict, InvalidInput, NotFound
from ..hashing import ContentHasher
from ..storage import ArtifactJanitor, PathResolver, media_path_for
from ..storage.paths import CACHE, FORMS
from .latest_view import LatestByIdView
from .models import (
    DATE,
    DELETED_DATE,
    DISPLAY_NAME,
    FORM_FILE_PATH,
    FORM_MEDIA_PATH,
    ID,
    JR_FORM_ID,
    JRCACHE_FILE_PATH,
    MD5_HASH,
    PATH_COLUMNS,
    FormRecord,
    normalize_values,
)
from .notify import FORMS as FORMS_SCOPE
from .notify import LATEST_BY_FORM_ID, ChangeNotifier, NullNotifier
from .query import Filter, OrderSpec
from .record_store import FormRecordStore, Row

logger = logging.getLogger(__name__)

# Columns an update may never set directly.
_IMMUTABLE_ON_UPDATE = (ID, DATE, DELETED_DATE)


def _now_millis() -> int:
    return int(time.time() * 1000)


def _same_path(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return a is b
    return os.path.normcase(os.path.normpath(a)) == os.path.normcase(os.path.normpath(b))


class FormRegistry:
    """
    Mutation engine and query surface for form records.

    Parameters
    ----------
    store : FormRecordStore
        Persistence for form rows (root-relative paths).
    paths : PathResolver
        Translates between stored and absolute paths.
    hasher : ContentHasher
        Fingerprints definition files.
    janitor : ArtifactJanitor, optional
        Removes superseded artifacts; a default one is created if omitted.
    notifier : ChangeNotifier, optional
        Told after each mutation; silent if omitted.
    clock : callable, optional
        Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        store: FormRecordStore,
        paths: PathResolver,
        hasher: ContentHasher,
        janitor: Optional[ArtifactJanitor] = None,
        notifier: Optional[ChangeNotifier] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.paths = paths
        self.hasher = hasher
        self.janitor = janitor or ArtifactJanitor()
        self.notifier = notifier or NullNotifier()
        self.clock = clock or _now_millis

        self._lock = threading.RLock()
        self.latest_view = LatestByIdView(
            store,
            to_absolute=self._absolute_record,
            map_filter=self._relative_filter,
        )

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def insert(self, values: Mapping[str, Any]) -> int:
        """
        Register a form definition file and return the new record's id.

        Only ``form_file_path`` is required. The hash is always computed
        from the file; display name, form id, date, cache path and media
        path are derived when absent.

        Raises
        ------
        InvalidInput
            No definition path, or the file does not exist.
        Conflict
            A live record already points at the same definition file.
        """
        values = normalize_values(values)

        if values.get(ID) is not None:
            raise InvalidInput("_id is assigned by the store and cannot be supplied")
        if values.get(DELETED_DATE) is not None:
            raise InvalidInput("a form cannot be inserted already deleted")
        values.pop(ID, None)

        form_path = values.get(FORM_FILE_PATH)
        if not form_path:
            raise InvalidInput(f"{FORM_FILE_PATH} must be specified.")

        form_path = self.paths.to_absolute(form_path, FORMS)
        if not os.path.isfile(form_path):
            raise InvalidInput(f"Form definition file does not exist: {form_path}")
        values[FORM_FILE_PATH] = form_path

        # don't let callers put in a manual hash
        values.pop(MD5_HASH, None)
        md5 = self.hasher.hash(form_path)
        values[MD5_HASH] = md5

        file_name = os.path.basename(form_path)
        if values.get(DATE) is None:
            values[DATE] = self.clock()
        if values.get(DISPLAY_NAME) is None:
            values[DISPLAY_NAME] = file_name
        if values.get(JR_FORM_ID) is None:
            values[JR_FORM_ID] = os.path.splitext(file_name)[0]

        if values.get(JRCACHE_FILE_PATH) is None:
            values[JRCACHE_FILE_PATH] = self.paths.cache_path_for(md5)
        else:
            values[JRCACHE_FILE_PATH] = self.paths.to_absolute(values[JRCACHE_FILE_PATH], CACHE)

        if values.get(FORM_MEDIA_PATH) is None:
            values[FORM_MEDIA_PATH] = media_path_for(form_path)
        else:
            values[FORM_MEDIA_PATH] = self.paths.to_absolute(values[FORM_MEDIA_PATH], FORMS)

        stored = self._relative_values(values)

        with self._lock:
            existing = self.store.scan(
                Filter.where(form_file_path=stored[FORM_FILE_PATH]),
                projection=[ID],
            )
            if existing:
                raise Conflict(
                    f"A form is already registered for definition file {form_path} "
                    f"(id={existing[0][ID]})"
                )

            form_pk = self.store.insert(stored)
            logger.info("Inserted form %s (id=%d, md5=%s)", form_path, form_pk, md5)
            self._notify()

        return form_pk

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, patch: Mapping[str, Any], flt: Optional[Filter] = None) -> int:
        """
        Apply the same patch to every live record matching ``flt``.

        Returns the number of rows updated; no match is not an error.
        """
        patch, new_hash = self._prepare_patch(patch)
        count = 0

        with self._lock:
            targets = self.store.scan(self._relative_filter(self._live(flt)), projection=[ID])

            if FORM_FILE_PATH in patch and len(targets) > 1:
                raise Conflict(
                    f"Cannot point {len(targets)} forms at the same definition file "
                    f"{patch[FORM_FILE_PATH]}"
                )

            for row in targets:
                try:
                    count += self._update_one(row[ID], patch, new_hash)
                except NotFound:
                    logger.warning("Attempting to update row that does not exist (id=%s)", row[ID])

            logger.info("Updated %d form(s)", count)
            self._notify()

        return count

    def update_by_id(self, form_pk: int, patch: Mapping[str, Any]) -> int:
        """
        Patch a single record.

        Raises NotFound if no live record has this id.
        """
        patch, new_hash = self._prepare_patch(patch)

        with self._lock:
            count = self._update_one(form_pk, patch, new_hash)
            if count == 0:
                raise NotFound(f"No form with id {form_pk}")
            logger.info("Updated form id=%d", form_pk)
            self._notify()

        return count

    def _prepare_patch(self, patch: Mapping[str, Any]):
        """
        Normalize a patch to absolute paths and hash the new definition.

        Everything that can fail validation is checked here, before any
        file is touched.
        """
        patch = normalize_values(patch)

        for column in _IMMUTABLE_ON_UPDATE:
            if column in patch:
                raise InvalidInput(f"{column} cannot be changed by an update")

        # don't let callers manually update the hash
        patch.pop(MD5_HASH, None)

        new_hash = None
        if FORM_FILE_PATH in patch:
            new_path = self.paths.to_absolute(patch[FORM_FILE_PATH], FORMS)
            if not new_path or not os.path.isfile(new_path):
                raise InvalidInput(f"Form definition file does not exist: {new_path}")
            patch[FORM_FILE_PATH] = new_path
            new_hash = self.hasher.hash(new_path)

        if patch.get(JRCACHE_FILE_PATH) is not None:
            patch[JRCACHE_FILE_PATH] = self.paths.to_absolute(patch[JRCACHE_FILE_PATH], CACHE)
        if patch.get(FORM_MEDIA_PATH) is not None:
            patch[FORM_MEDIA_PATH] = self.paths.to_absolute(patch[FORM_MEDIA_PATH], FORMS)

        for column in (FORM_FILE_PATH, JRCACHE_FILE_PATH, FORM_MEDIA_PATH, DISPLAY_NAME, JR_FORM_ID):
            if column in patch and patch[column] is None:
                raise InvalidInput(f"{column} cannot be cleared")

        return patch, new_hash

    def _update_one(self, form_pk: int, patch: Dict[str, Any], new_hash: Optional[str]) -> int:
        """
        Merge a patch over one record, invalidating artifacts it supersedes.
        """
        existing = self._absolute_record(self.store.get(form_pk))
        old = existing.to_values()

        merged = dict(old)
        merged.update(patch)
        merged[MD5_HASH] = old[MD5_HASH]

        old_form = old[FORM_FILE_PATH]
        old_cache = old[JRCACHE_FILE_PATH]
        old_media = old[FORM_MEDIA_PATH]

        path_changed = FORM_FILE_PATH in patch and not _same_path(patch[FORM_FILE_PATH], old_form)
        if path_changed:
            clash = self.store.scan(
                Filter.where(form_file_path=self.paths.to_relative(patch[FORM_FILE_PATH], FORMS))
                .and_(ID, "!=", form_pk),
                projection=[ID],
            )
            if clash:
                raise Conflict(
                    f"A form is already registered for definition file {patch[FORM_FILE_PATH]} "
                    f"(id={clash[0][ID]})"
                )

        # the cache goes before the definition file: a new definition
        # must never be paired with the old cache, even briefly
        if JRCACHE_FILE_PATH in patch and not _same_path(patch[JRCACHE_FILE_PATH], old_cache):
            self._release(JRCACHE_FILE_PATH, old_cache, form_pk)

        if FORM_FILE_PATH in patch:
            if path_changed:
                self.janitor.remove_file_or_tree(old_form)

                if FORM_MEDIA_PATH not in patch and _same_path(old_media, media_path_for(old_form)):
                    merged[FORM_MEDIA_PATH] = media_path_for(patch[FORM_FILE_PATH])
                    if not _same_path(merged[FORM_MEDIA_PATH], old_media):
                        self._release(FORM_MEDIA_PATH, old_media, form_pk)

            # content is assumed to have changed
            self._release(JRCACHE_FILE_PATH, old_cache, form_pk)
            merged[MD5_HASH] = new_hash
            merged[JRCACHE_FILE_PATH] = self.paths.cache_path_for(new_hash)

        merged.pop(ID, None)
        return self.store.update_by_id(form_pk, self._relative_values(merged))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, flt: Optional[Filter] = None) -> int:
        """
        Delete every record matching ``flt`` together with its files.

        Returns the number of rows removed from the store, whatever
        happened to the files.
        """
        count = 0

        with self._lock:
            records = self.store.scan(self._relative_filter(flt))
            for record in records:
                count += self._delete_one(self._absolute_record(record))

            logger.info("Deleted %d form(s)", count)
            self._notify()

        return count

    def delete_by_id(self, form_pk: int) -> int:
        """
        Delete one record and its files.

        Raises NotFound if no live record has this id.
        """
        with self._lock:
            record = self._absolute_record(self.store.get(form_pk))
            count = self._delete_one(record)
            if count == 0:
                raise NotFound(f"No form with id {form_pk}")
            self._notify()

        return count

    def _delete_one(self, record: FormRecord) -> int:
        doomed = [
            path
            for column, path in (
                (FORM_MEDIA_PATH, record.form_media_path),
                (JRCACHE_FILE_PATH, record.cache_file_path),
            )
            if not self._shared(column, path, record.id)
        ]
        doomed.append(record.form_file_path)

        removed = self.janitor.remove_many(doomed)
        if not removed:
            logger.warning("Some files of form id=%d could not be removed", record.id)

        count = self.store.delete_by_id(record.id)
        logger.info("Deleted form %s (id=%d)", record.form_file_path, record.id)
        return count

    # ------------------------------------------------------------------
    # Shared artifacts
    # ------------------------------------------------------------------

    def _shared(self, column: str, path: Optional[str], form_pk: int) -> bool:
        """
        True if another live record references the same artifact.

        Identical definitions hash alike and so share one cache file.
        """
        if path is None:
            return False
        others = self.store.scan(
            Filter.where(**{column: self.paths.to_relative(path, PATH_COLUMNS[column])})
            .and_(ID, "!=", form_pk),
            projection=[ID],
        )
        if others:
            logger.info("Keeping %s: still used by form id=%s", path, others[0][ID])
            return True
        return False

    def _release(self, column: str, path: Optional[str], form_pk: int) -> bool:
        if self._shared(column, path, form_pk):
            return True
        return self.janitor.remove_file_or_tree(path)

    # ------------------------------------------------------------------
    # Soft delete
    # ------------------------------------------------------------------

    def soft_delete(self, form_pk: int) -> FormRecord:
        """
        Mark a record deleted, keeping its row and files.

        The record drops out of default scans and of the latest view, and
        its definition path becomes free for a new insert.
        """
        with self._lock:
            record = self._absolute_record(self.store.get(form_pk))
            when = self.clock()
            if self.store.soft_delete_by_id(form_pk, when) == 0:
                raise NotFound(f"No form with id {form_pk}")
            logger.info("Soft-deleted form %s (id=%d)", record.form_file_path, form_pk)
            self._notify()

        return record.with_values({DELETED_DATE: when})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, form_pk: int, include_deleted: bool = False) -> FormRecord:
        return self._absolute_record(self.store.get(form_pk, include_deleted=include_deleted))

    def scan(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
        projection: Optional[Sequence[str]] = None,
    ) -> List[Row]:
        rows = self.store.scan(self._relative_filter(flt), order_by, projection)
        if projection:
            return [self._absolute_values(r) for r in rows]
        return [self._absolute_record(r) for r in rows]

    def latest_by_form_id(
        self,
        flt: Optional[Filter] = None,
        order_by: OrderSpec = None,
    ) -> List[FormRecord]:
        return self.latest_view.query(flt, order_by)

    def find_by_form_id(self, form_id: str, version: Optional[str] = None) -> List[FormRecord]:
        """All live records for a form id, newest first."""
        flt = Filter.where(jr_form_id=form_id)
        if version is not None:
            flt = flt.and_("jr_version", "=", version)
        return self.scan(flt, order_by="date DESC, _id DESC")

    def get_by_md5(self, md5_hash: str) -> Optional[FormRecord]:
        rows = self.scan(Filter.where(md5_hash=md5_hash), order_by="date DESC, _id DESC")
        return rows[0] if rows else None

    def missing_artifacts(self) -> List[FormRecord]:
        """
        Live records whose definition file is gone from disk.

        Such records are a recoverable inconsistency; nothing is changed.
        """
        return [r for r in self.scan() if not os.path.isfile(r.form_file_path)]

    # ------------------------------------------------------------------
    # Path translation
    # ------------------------------------------------------------------

    def _absolute_values(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        out = dict(values)
        for column, kind in PATH_COLUMNS.items():
            if column in out:
                out[column] = self.paths.to_absolute(out[column], kind)
        return out

    def _relative_values(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        out = dict(values)
        for column, kind in PATH_COLUMNS.items():
            if column in out:
                out[column] = self.paths.to_relative(out[column], kind)
        return out

    def _absolute_record(self, record: FormRecord) -> FormRecord:
        values = record.to_values()
        return record.with_values(
            {c: self.paths.to_absolute(values[c], kind) for c, kind in PATH_COLUMNS.items()}
        )

    def _relative_filter(self, flt: Optional[Filter]) -> Optional[Filter]:
        if flt is None:
            return None
        return flt.map_values(
            PATH_COLUMNS,
            lambda column, value: self.paths.to_relative(value, PATH_COLUMNS[column]),
        )

    @staticmethod
    def _live(flt: Optional[Filter]) -> Filter:
        flt = flt or Filter()
        if flt.include_deleted:
            flt = Filter(flt.conditions, include_deleted=False)
        return flt

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self) -> None:
        self.notifier.notify(FORMS_SCOPE)
        self.notifier.notify(LATEST_BY_FORM_ID)


__all__ = ["FormRegistry"]
