"""Custom exception hierarchy for pearlarchive."""


class ArchiveError(Exception):
    """Base exception for all pearlarchive errors."""

    retryable: bool = False


class CorpusLoadError(ArchiveError):
    """Failed to load the base thread corpus."""


class StorageError(ArchiveError):
    """Overlay storage read or write failed."""

    retryable = True


class NotAuthorizedError(ArchiveError):
    """Caller is not allowed to run the command."""


class AuthenticationRequiredError(NotAuthorizedError):
    """Command needs a signed-in user."""


class AuthorizationError(NotAuthorizedError):
    """Signed-in user lacks the required role."""


class InvalidRequestError(ArchiveError):
    """Command arguments are invalid."""


class ConfigError(ArchiveError):
    """Invalid configuration."""
