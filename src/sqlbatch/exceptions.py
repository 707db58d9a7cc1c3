"""
Batch-specific exception classes.
"""
import sqlite3

import psycopg


class BatchError(Exception):
    """Base class for all sqlbatch errors.
    """


class ValidationError(BatchError):
    """Error in input validation.
    """


class UnbalancedConstructError(BatchError):
    """End of input reached inside an open quote, comment or block.

    Raised while splitting, so no statement of the batch has run.
    """

    def __init__(self, construct: str, position: int, line: int) -> None:
        super().__init__(f'Unterminated {construct} starting at line {line} (offset {position})')
        self.construct = construct
        self.position = position
        self.line = line


class MixedPlaceholderKindError(BatchError):
    """A single statement mixes positional, numbered and named placeholders.
    """

    def __init__(self, statement: str, kinds) -> None:
        names = ', '.join(sorted(k.value for k in kinds))
        super().__init__(f'Statement mixes placeholder kinds ({names}): {statement}')
        self.statement = statement
        self.kinds = frozenset(kinds)


class AmbiguousBindError(BatchError):
    """Flat bind values given for statements without placeholder counts.
    """


class BindCountError(BatchError):
    """Number of flat bind values does not match the placeholders found.
    """


class StatementExecutionFailure(BatchError):
    """The connection failed to execute one statement of a batch.

    Carries the zero-based ``index`` of the statement, its ``statement``
    text and the connection's ``error_info`` captured right after the
    failure. The driver exception, when there is one, is the ``__cause__``.
    """

    def __init__(self, index: int, statement: str, error_info=None) -> None:
        detail = error_info.message if error_info is not None else 'unknown error'
        super().__init__(f'Statement {index} failed: {detail}')
        self.index = index
        self.statement = statement
        self.error_info = error_info


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    )