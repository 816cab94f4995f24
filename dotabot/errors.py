"""
errors.py — Error taxonomy shared by the clients, the store and the reconciler.

Everything derives from RuntimeError, so call sites that only care about
"something upstream went wrong" can keep catching RuntimeError.
"""


class DotabotError(RuntimeError):
    """Base class for all errors raised by this package."""


class UpstreamUnavailable(DotabotError):
    """Network error, timeout, non-2xx status or GraphQL error from a provider."""


class NotFound(DotabotError):
    """The requested player or match does not exist upstream."""


class NotSupported(DotabotError):
    """The active provider has no such capability (e.g. name search on Stratz)."""


class InvalidInput(DotabotError):
    """Malformed identifier or configuration value."""


class PersistenceError(DotabotError):
    """A durable write to the registration store failed."""


class DataInconsistency(DotabotError):
    """A fetched match does not contain the player we expected in it."""
