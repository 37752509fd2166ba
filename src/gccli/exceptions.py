"""gccli exceptions."""


class GccliError(Exception):
    """Base exception for gccli errors."""

    pass


class DuplicateAccountError(GccliError):
    """Raised when adding an account whose email is already stored."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account '{email}' already exists")


class AccountNotFoundError(GccliError):
    """Raised when an operation targets an unknown account."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account '{email}' not found")


class CredentialsNotConfiguredError(GccliError):
    """Raised when adding an account before OAuth client credentials are set."""

    def __init__(self):
        super().__init__(
            "No credentials configured. Run: gccli accounts credentials <credentials.json>"
        )


class InvalidCredentialsFileError(GccliError):
    """Raised when an OAuth client credentials file cannot be used."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Invalid credentials file {path}: {reason}")


class AuthorizationFailedError(GccliError):
    """Raised when the OAuth authorization handshake does not complete."""

    pass


class CalendarAPIError(GccliError):
    """Raised when the Google Calendar API reports a failure."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)
