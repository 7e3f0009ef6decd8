"""Error taxonomy for the content store.

Every error is recoverable at the request layer: the API turns them into
4xx responses and the CLI prints the message and exits non-zero.
"""

from __future__ import annotations


class ContentStoreError(Exception):
    """Base class for all content-store failures."""


class ValidationError(ContentStoreError):
    """A required field is blank or missing, or a request is malformed."""


class NotFoundError(ContentStoreError):
    """An item, class or roster entry does not exist."""


class IndexOutOfRangeError(NotFoundError):
    """A roster position is outside the roster."""


class UnknownCollectionError(ContentStoreError):
    """The collection name is not one of the recognised collections."""


class LegacyFormatError(ContentStoreError):
    """A legacy flat-file store could not be parsed."""
