"""
Persistence exceptions.

Raised by the PostgREST client. The repository catches them, logs them and
reports failure through its return value, so a store outage never changes
the outcome of a probe.
"""

from typing import Any, Optional


class PersistenceError(Exception):
    """
    A store request failed (transport error or non-2xx response).

    Attributes:
        operation: Store operation that failed (insert, select, delete, ping)
        table: Table involved, if any
        status_code: HTTP status, if a response was received
        details: Response body excerpt or transport error text
    """

    def __init__(
        self,
        message: str,
        operation: str,
        table: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.table = table
        self.status_code = status_code
        self.details = details
