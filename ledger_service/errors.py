from typing import Optional


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class InvalidFieldError(LedgerError):
    """A request field is missing or malformed; raised before any write."""
    status_code = 400

    def __init__(self, field: Optional[str], message: str):
        super().__init__(message)
        self.field = field

class NotFoundError(LedgerError):
    status_code = 404

class ForbiddenError(LedgerError):
    status_code = 403

class StorageFailure(LedgerError):
    """The atomic unit could not be committed."""
    status_code = 500
