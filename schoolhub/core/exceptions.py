class SchoolHubError(Exception):
    """Base class for errors raised by SchoolHub services."""

    message = "Oops! Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(SchoolHubError):
    message = "Invalid input."


class AuthError(SchoolHubError):
    message = "Authentication failed."


class LockoutError(AuthError):
    message = "Too many failed attempts. Please log in again."


class NotifierError(SchoolHubError):
    message = "Notification delivery failed."


class TransientDeliveryError(NotifierError):
    """The delivery endpoint could not be reached; the caller may keep its data."""

    message = "Notification endpoint unreachable."
