"""Error taxonomy shared by the store, the auth gate and the HTTP layer."""


class StoreError(Exception):
    """Base class for storefront errors. Carries the HTTP status to answer with."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StoreError):
    status_code = 400
    default_message = "Invalid input"


class DuplicateKey(StoreError):
    status_code = 409
    default_message = "Record already exists"


class RecordNotFound(StoreError):
    status_code = 404
    default_message = "Record not found"


class Unauthenticated(StoreError):
    status_code = 401
    default_message = "Invalid credentials"


class Unauthorized(StoreError):
    status_code = 403
    default_message = "Forbidden"


class StorageUnavailable(StoreError):
    """Disk/FS failure or corrupted document. Fatal, never retried automatically."""

    status_code = 500
    default_message = "Storage unavailable"
