class DuplicateError(Exception):
    """Raised when an insert hits a unique constraint (already liked, already following)"""


class StorageError(Exception):
    """Raised when the object store rejects an upload"""
