# backend/app/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain errors and contain NO HTTP knowledge.
Global handlers in main.py map them to HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError          caller's fault, never retried
    ├── NotFoundError            referenced instrument/user absent
    │   ├── InstrumentNotFoundError
    │   └── UserNotFoundError
    ├── UserExistsError          duplicate email on registration
    ├── StoreError               I/O failure against the database (retryable)
    └── InternalError            unexpected failure, details stay in logs
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when an operation receives missing or malformed input.

    Detected before any store access.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "Instrument", "User")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class InstrumentNotFoundError(NotFoundError):
    """Raised when an instrument id or symbol is not in the reference data."""

    def __init__(self, instrument: int | str) -> None:
        label = f"'{instrument}'" if isinstance(instrument, str) else str(instrument)
        super().__init__(
            f"Instrument {label} not found",
            resource_type="Instrument",
            resource_id=instrument,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not exist."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(
            f"User {user_id} not found",
            resource_type="User",
            resource_id=user_id,
        )


# =============================================================================
# CONFLICT ERRORS
# =============================================================================


class UserExistsError(ServiceError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"User with email '{email}' already exists")


# =============================================================================
# INFRASTRUCTURE ERRORS
# =============================================================================


class StoreError(ServiceError):
    """
    Raised when a read or write against the database fails.

    Transient: the whole operation is safe to retry. The message is meant
    for logs; callers show a generic message to users.

    Attributes:
        operation: Store operation that failed (e.g. "append_observation")
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation '{operation}' failed: {reason}")


class InternalError(ServiceError):
    """
    Raised for unexpected failures (bugs, broken invariants).

    The original exception is chained (__cause__) and logged; it is never
    exposed to API clients.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Unexpected error during '{operation}'")


__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "InstrumentNotFoundError",
    "UserNotFoundError",
    "UserExistsError",
    "StoreError",
    "InternalError",
]
