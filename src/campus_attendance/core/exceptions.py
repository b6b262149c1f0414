class DomainError(Exception):
    """Base exception for business rule violations.

    The message is safe to show to the end user.
    """


class ConfigurationMissing(DomainError):
    """Raised at startup when required settings are absent."""

    def __init__(self, missing):
        self.missing = tuple(missing)
        super().__init__("缺少必要設定: " + ", ".join(self.missing))


class Unauthenticated(DomainError):
    """Raised when there is no valid session user."""


class AuthenticationError(DomainError):
    """Raised when the external login cannot be completed."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class BindingRequired(DomainError):
    """Raised when a feature needs a confirmed student binding."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidFormat(ValidationError):
    """Malformed student id or name during binding."""


class InvalidLocation(ValidationError):
    """Missing or non-finite coordinates."""


class BindingError(DomainError):
    """Binding preconditions failed."""


class AlreadyBound(BindingError):
    pass


class StudentNotFound(BindingError):
    pass


class NameMismatch(BindingError):
    pass


class AlreadyClaimed(BindingError):
    pass


class DuplicateCheckIn(DomainError):
    """Raised when the user already checked in on the current local day."""


class GeolocationError(DomainError):
    """Device location sensor failures."""


class LocationUnavailable(GeolocationError):
    pass


class PermissionDenied(GeolocationError):
    pass


class LocationTimeout(GeolocationError):
    pass


class StorageFailure(Exception):
    """Underlying persistence error, wrapped with context.

    Not a DomainError: its message is for logs, never for the user.
    """
