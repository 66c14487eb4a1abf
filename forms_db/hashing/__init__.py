"""
forms_db.hashing

Content hashing of form definition files.

- ContentHasher: the capability the registry depends on.
- FileContentHasher: default ContentHasher over a file's bytes.
"""

from .content_hash import ContentHasher, FileContentHasher

__all__ = [
    "ContentHasher",
    "FileContentHasher",
]
