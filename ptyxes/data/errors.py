"""
Exceptions raised by the data layer.

Constraint violations and missing rows are not exceptions: the operations
report them as False / None. Only conditions the caller cannot recover from
by changing its input are raised.
"""


class StoreError(Exception):
    """Base class for data layer errors."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the database file cannot be opened, read or written."""
    pass


class ClosedStoreError(StoreUnavailableError):
    """Raised when an operation is attempted after close()."""
    pass
