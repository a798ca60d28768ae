"""Exception hierarchy for the SQL safety gate and the connection layer.

Every error carries a ``kind`` (stable, machine-readable), a ``reason``
(short human-readable message) and an optional ``detail`` naming the
offending token, pattern, function or schema.

Tools catch these and turn them into error envelopes via types.error_result().
"""


class SqlGateError(Exception):
    """Base class for every error raised by this package."""

    kind = "Error"

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(reason, detail)
        self.reason = reason
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.reason}: {self.detail}"
        return self.reason


class ValidationRejected(SqlGateError):
    """Caller-supplied text was rejected before reaching the server."""

    kind = "ValidationRejected"


class EmptyInput(ValidationRejected):
    kind = "EmptyInput"


class InvalidIdentifier(ValidationRejected):
    kind = "InvalidIdentifier"


class MultiStatement(ValidationRejected):
    kind = "MultiStatement"


class ParseFailure(ValidationRejected):
    kind = "ParseFailure"


class DisallowedStatementKind(ValidationRejected):
    kind = "DisallowedStatementKind"


class DangerousFunction(ValidationRejected):
    kind = "DangerousFunction"


class ForbiddenSchema(ValidationRejected):
    kind = "ForbiddenSchema"


class BlockedPattern(ValidationRejected):
    kind = "BlockedPattern"


class UnbalancedParens(ValidationRejected):
    kind = "UnbalancedParens"


class FragmentTooLong(ValidationRejected):
    kind = "FragmentTooLong"


class ForbiddenFragmentToken(ValidationRejected):
    kind = "ForbiddenFragmentToken"


class UnknownConnection(SqlGateError):
    kind = "UnknownConnection"


class DatabaseConnectionError(SqlGateError):
    """Pool creation, ping or driver failure."""

    kind = "ConnectionError"


class QueryTimeout(SqlGateError):
    kind = "Timeout"


class ConfigurationError(SqlGateError):
    kind = "ConfigurationError"
