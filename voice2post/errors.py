"""Exception types shared across services."""


class ConfigurationError(RuntimeError):
    """A required setting or secret is missing at startup."""


class UsageLedgerError(RuntimeError):
    """The usage ledger could not be read or written."""


class AuthTimeoutError(TimeoutError):
    pass


class AudioFetchError(RuntimeError):
    """Every audio fetch strategy failed. ``timed_out`` reflects the last failure."""

    def __init__(self, message, timed_out=False, attempts=None):
        super().__init__(message)
        self.timed_out = timed_out
        self.attempts = list(attempts or [])


class AudioTooLargeError(AudioFetchError):
    """The remote audio is larger than the upload ceiling; no other strategy is tried."""
