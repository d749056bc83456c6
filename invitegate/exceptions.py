"""Error taxonomy shared by the identity services and the HTTP layer."""


class IdentityError(Exception):
    """Base class for expected failures surfaced at the boundary.

    Attributes:
        message: Human-readable outcome returned to the caller
        status_code: HTTP status the API layer responds with
    """

    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(IdentityError):
    """A username, invite or session does not exist."""

    status_code = 404
    default_message = "Not found."


class UnauthorizedError(IdentityError):
    """Password mismatch, or an invalid or expired token."""

    status_code = 401
    default_message = "Invalid authentication token."


class ConflictError(IdentityError):
    """Username already taken, or invite already consumed or expired."""

    status_code = 400
    default_message = "Conflicting request."


class ForbiddenError(IdentityError):
    """Caller lacks the privilege for an administrative action."""

    status_code = 403
    default_message = "Insufficient permissions."


class PersistenceError(IdentityError):
    """A storage operation failed.

    The original driver error is chained as __cause__ for logging and never
    reaches the response body.
    """

    status_code = 500
    default_message = "Internal server error."


class PersistenceUnavailableError(PersistenceError):
    """The persistence unit could not be opened or provisioned at startup."""

    default_message = "Database unavailable."
