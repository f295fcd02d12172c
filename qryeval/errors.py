"""
Exception types raised by the query evaluation engine.
"""


class QryEvalError(Exception):
    """Base class for all QryEval errors."""


class ConfigurationError(QryEvalError, ValueError):
    """Missing, unknown or malformed configuration."""


class QuerySyntaxError(QryEvalError, ValueError):
    """Malformed query line or query text."""


class UnsupportedOperatorError(QuerySyntaxError):
    """Query operator that the active retrieval model cannot score."""

    def __init__(self, operator: str, model: str):
        super().__init__(f"Operator {operator} is not supported by the {model} retrieval model")
        self.operator = operator
        self.model = model


class IndexFormatError(QryEvalError):
    """Index dump that does not satisfy the postings invariants."""


class IteratorStateError(QryEvalError, LookupError):
    """A match was requested from an iterator that has none."""
