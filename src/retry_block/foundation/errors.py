"""Exceptions raised by the convenience layer.

The loops themselves never raise for operation failures: they return Err.
Only the decorator helpers, which have to hand a plain value back to the
caller, turn a final error into an exception.
"""

from __future__ import annotations


class RetryError(Exception):
    """Final failure of a retried call whose error is not an exception.

    Attributes:
        error: The last error the operation produced, carried verbatim.
    """

    def __init__(self, error: object) -> None:
        super().__init__(f"Retried operation failed: {error!r}")
        self.error = error
