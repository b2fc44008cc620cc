class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidFormatError(ValidationError):
    """Raised when a value does not match its required format."""


class DuplicateNameError(ValidationError):
    """Raised when a unique name is already taken."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StorageError(Exception):
    """Raised by repositories when the database fails inside a unit of work."""
