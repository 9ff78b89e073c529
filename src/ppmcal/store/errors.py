"""Exceptions raised by the document store."""


class StoreError(Exception):
    """Exception raised for document store failures."""
    pass


class CommitError(StoreError):
    """A write batch could not be committed; nothing was written."""
    pass


class BatchStateError(StoreError):
    """A write batch was used after it was committed."""
    pass
