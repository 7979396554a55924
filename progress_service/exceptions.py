"""
Error kinds raised by the persistence and catalog collaborators.

The core only catches these (plus validation errors on stored records);
anything else is a bug and propagates.
"""


class ProgressServiceError(Exception):
    """Base class for recoverable collaborator failures"""


class StorageError(ProgressServiceError):
    """Key-value store or DynamoDB operation failed"""


class CatalogError(ProgressServiceError):
    """Remote achievement catalog unavailable or returned a bad payload"""
