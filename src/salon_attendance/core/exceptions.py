class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""


class ExternalServiceError(Exception):
    """Raised when a remote collaborator call fails or times out."""


class ReferenceUnavailableError(ExternalServiceError):
    """Raised when a stored reference image cannot be loaded."""
