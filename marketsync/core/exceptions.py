class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ValidationError(BaseServiceError):
    """Raised when a precondition fails before any write (missing credentials, malformed ids)."""
    pass

class PlatformServiceError(BaseServiceError):
    """Base exception for marketplace-facing errors."""
    pass

class CatalogSourceError(PlatformServiceError):
    """Raised when a marketplace catalog call fails (timeout, network, non-2xx)."""

    def __init__(self, message: str, status_code=None, error_code=None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code

class DatabaseError(Exception):
    """Exception raised for database-related errors."""
    pass
