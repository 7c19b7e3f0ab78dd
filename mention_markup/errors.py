"""Exceptions raised by the mention engine."""


class PreconditionError(AssertionError):
    """Raised when a caller breaks one of the engine's invariants.

    This signals a programming error (e.g. committing a mention while nothing
    is being composed), not a recoverable runtime condition.
    """
