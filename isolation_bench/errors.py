r"""
Error taxonomy for isolation-bench.

    from isolation_bench.errors import ConflictExhausted, HandshakeTimeout
"""

__all__ = [
    "ConflictExhausted",
    "HandshakeError",
    "HandshakeTimeout",
    "HarnessInvariantError",
    "IsolationBenchError",
    "SchemaError",
    "TransientConflict",
]


class IsolationBenchError(Exception):
    """Base class for all isolation-bench errors."""


class TransientConflict(IsolationBenchError):
    """The store rejected a transaction in a way that may succeed on retry.

    Serialization failures, deadlock victims and write-write conflicts.
    """


class ConflictExhausted(IsolationBenchError):
    """A transaction kept conflicting until its retry budget ran out."""

    def __init__(self, message: str, *, attempts: int = 0, last_error: str | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class HandshakeError(IsolationBenchError):
    """A handshake channel was signalled while a token was still pending."""


class HandshakeTimeout(IsolationBenchError):
    """A party waited for its peer's signal longer than allowed."""


class SchemaError(IsolationBenchError):
    """The store could not create or reach the row table."""


class HarnessInvariantError(IsolationBenchError):
    """The harness itself misbehaved, as opposed to the isolation level."""
