"""Domain errors raised by the services and mapped to HTTP responses in ``aidogs.main``."""


class LedgerError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(LedgerError):
    status_code = 404
    default_message = "Not found"


class AlreadyClaimed(LedgerError):
    status_code = 400
    default_message = "Reward already claimed"


class AlreadyClaimedToday(AlreadyClaimed):
    default_message = "Points already claimed for today"


class StorageError(LedgerError):
    """The database failed. Callers only see a generic message."""

    status_code = 500


class CodeSpaceExhausted(LedgerError):
    status_code = 500
    default_message = "Could not mint a unique code"


class ReferrerResolutionFailure(LedgerError):
    """A referral or boost code did not resolve.

    Internal only: the best-effort helper catches it before it reaches a handler.
    """

    default_message = "Referrer not found"
