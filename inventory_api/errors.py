"""
Exception hierarchy for the Inventory service.

The database client raises these, and the API translates each one into an
HTTP response carrying ``status_code`` and a ``{"error", "message"}`` body.

Catch `InventoryError` to handle any failure raised by the service, or a
specific subclass such as `NotFoundError` for fine-grained control.
"""


class InventoryError(Exception):
    """
    Base exception for all inventory errors.

    Subclasses set ``status_code`` and ``error`` (the short category label
    returned to API clients).
    """

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified inventory error occurred."
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(InventoryError):
    """Raised before any query when a required field is missing or blank."""

    status_code: int = 400
    error: str = "Bad Request"


class ReferentialError(InventoryError):
    """
    Raised on a foreign-key violation.

    Common causes
    -------------
    - Creating stock for a product code that does not exist
    - The product was deleted between lookup and insert
    """

    status_code: int = 400
    error: str = "Bad Request"


class NotFoundError(InventoryError):
    """Raised when no row matches the identifier of a get, update or delete."""

    status_code: int = 404
    error: str = "Not Found"


class ConflictError(InventoryError):
    """Raised on a unique-constraint violation, e.g. a duplicate product code."""

    status_code: int = 409
    error: str = "Conflict"


class DatabaseError(InventoryError):
    """
    Raised for any database failure not classified above.

    The message includes the underlying driver error for diagnostics.
    """

    status_code: int = 500
    error: str = "Internal Server Error"


class DatabaseNotConfiguredError(DatabaseError):
    """Raised when no DATABASE_URL is configured."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "DATABASE_URL is not set; the API cannot reach the database.")
