"""Error types raised by the point-of-sale persistence layer."""

from __future__ import annotations


class POSError(Exception):
    """Base class for every error raised by museum_pos."""


class StoreUnavailable(POSError):
    """The backing SQLite file could not be opened or created."""


class SchemaCreationFailed(POSError):
    """A CREATE TABLE statement failed during startup."""


class RotationIOError(POSError):
    """Archiving the previous dataset or writing the marker failed."""


class MarshalError(POSError):
    """A value could not be converted to or from its SQL representation."""


class EncodeError(MarshalError):
    pass


class DecodeError(MarshalError):
    pass


class InsertFailed(POSError):
    """The database rejected a generated INSERT statement."""


class ValidationError(POSError, ValueError):
    """An entity failed its own validity predicate."""
