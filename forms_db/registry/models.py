from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from ..errors import InvalidInput
from ..storage.paths import CACHE, FORMS


# ----------------------------------------------------------------------
# Columns
# ----------------------------------------------------------------------

ID = "_id"
DISPLAY_NAME = "display_name"
DESCRIPTION = "description"
JR_FORM_ID = "jr_form_id"
JR_VERSION = "jr_version"
FORM_FILE_PATH = "form_file_path"
SUBMISSION_URI = "submission_uri"
BASE64_RSA_PUBLIC_KEY = "base64_rsa_public_key"
MD5_HASH = "md5_hash"
DATE = "date"
JRCACHE_FILE_PATH = "jrcache_file_path"
FORM_MEDIA_PATH = "form_media_path"
LANGUAGE = "language"
AUTO_SEND = "auto_send"
AUTO_DELETE = "auto_delete"
GEOMETRY_XPATH = "geometry_xpath"
DELETED_DATE = "deleted_date"

# Attribute name -> column name. Attributes and columns coincide except
# for the surrogate key and a few historical column names.
ATTR_TO_COLUMN: Dict[str, str] = {
    "id": ID,
    "display_name": DISPLAY_NAME,
    "description": DESCRIPTION,
    "form_id": JR_FORM_ID,
    "version": JR_VERSION,
    "form_file_path": FORM_FILE_PATH,
    "submission_uri": SUBMISSION_URI,
    "public_key": BASE64_RSA_PUBLIC_KEY,
    "md5_hash": MD5_HASH,
    "date": DATE,
    "cache_file_path": JRCACHE_FILE_PATH,
    "form_media_path": FORM_MEDIA_PATH,
    "language": LANGUAGE,
    "auto_send": AUTO_SEND,
    "auto_delete": AUTO_DELETE,
    "geometry_xpath": GEOMETRY_XPATH,
    "deleted_date": DELETED_DATE,
}
COLUMN_TO_ATTR: Dict[str, str] = {c: a for a, c in ATTR_TO_COLUMN.items()}

COLUMNS = tuple(ATTR_TO_COLUMN.values())

# Columns holding a path, and the storage root each is relative to.
PATH_COLUMNS: Dict[str, str] = {
    FORM_FILE_PATH: FORMS,
    FORM_MEDIA_PATH: FORMS,
    JRCACHE_FILE_PATH: CACHE,
}

TRISTATE_COLUMNS = (AUTO_SEND, AUTO_DELETE)


# ----------------------------------------------------------------------
# Tri-state flags
# ----------------------------------------------------------------------

def parse_tristate(value: Any) -> Optional[str]:
    """
    Normalize an auto-send / auto-delete flag.

    None and "" mean "unset" (fall back to the app-wide setting);
    booleans and their usual spellings map to "true" / "false".
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip().lower()
    if text == "":
        return None
    if text in ("true", "1", "yes", "on"):
        return "true"
    if text in ("false", "0", "no", "off"):
        return "false"
    raise InvalidInput(f"Not a tri-state flag value: {value!r}")


def normalize_values(values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Turn a draft or patch into a column-keyed dict.

    Keys may be column names or FormRecord attribute names. Unknown keys
    raise InvalidInput; tri-state flags are normalized.
    """
    out: Dict[str, Any] = {}
    for key, value in (values or {}).items():
        if key in COLUMN_TO_ATTR:
            column = key
        elif key in ATTR_TO_COLUMN:
            column = ATTR_TO_COLUMN[key]
        else:
            raise InvalidInput(f"Unknown form column: {key!r}")
        if column in TRISTATE_COLUMNS:
            value = parse_tristate(value)
        out[column] = value
    return out


# ----------------------------------------------------------------------
# Form
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class FormRecord:
    """
    One row of the forms table.

    Paths are absolute when a record comes out of the registry and
    root-relative when it comes straight from the store.
    """

    id: int
    form_id: str
    display_name: str
    form_file_path: str
    md5_hash: str
    date: int
    cache_file_path: str
    form_media_path: str
    version: Optional[str] = None
    description: Optional[str] = None
    submission_uri: Optional[str] = None
    public_key: Optional[str] = None
    language: Optional[str] = None
    auto_send: Optional[str] = None
    auto_delete: Optional[str] = None
    geometry_xpath: Optional[str] = None
    deleted_date: Optional[int] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_date is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FormRecord":
        """
        Map a raw SQL row dict → FormRecord dataclass.
        """
        return cls(**{COLUMN_TO_ATTR[c]: row.get(c) for c in COLUMNS})

    def to_values(self) -> Dict[str, Any]:
        """Column-keyed dict of every field."""
        return {ATTR_TO_COLUMN[f.name]: getattr(self, f.name) for f in fields(self)}

    def with_values(self, values: Mapping[str, Any]) -> "FormRecord":
        """Copy with column-keyed values overlaid."""
        return replace(self, **{COLUMN_TO_ATTR[c]: v for c, v in values.items()})


__all__ = [
    "ID",
    "DISPLAY_NAME",
    "DESCRIPTION",
    "JR_FORM_ID",
    "JR_VERSION",
    "FORM_FILE_PATH",
    "SUBMISSION_URI",
    "BASE64_RSA_PUBLIC_KEY",
    "MD5_HASH",
    "DATE",
    "JRCACHE_FILE_PATH",
    "FORM_MEDIA_PATH",
    "LANGUAGE",
    "AUTO_SEND",
    "AUTO_DELETE",
    "GEOMETRY_XPATH",
    "DELETED_DATE",
    "ATTR_TO_COLUMN",
    "COLUMN_TO_ATTR",
    "COLUMNS",
    "PATH_COLUMNS",
    "TRISTATE_COLUMNS",
    "parse_tristate",
    "normalize_values",
    "FormRecord",
]
