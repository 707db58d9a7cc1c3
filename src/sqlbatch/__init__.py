"""
Execute multiple SQL statements, given as one string, on connections that
run one statement per call.

All operations can be called either as:
- Module functions: sqlbatch.execute_batch(cn, sql, ...)
- MultiStatement methods: MultiStatement(cn).do(sql, ...)

Splitting honours comments, quoted strings and identifiers, dollar quoting,
BEGIN ... END blocks and `DELIMITER` directives.
"""
__version__ = '0.1.0'

from collections.abc import Mapping
from typing import Any

from sqlbatch.batch import MultiStatement, resolve_statements
from sqlbatch.binder import bind
from sqlbatch.connection import FAILED, BatchConnection, connect
from sqlbatch.exceptions import AmbiguousBindError, BatchError, BindCountError
from sqlbatch.exceptions import DriverError, MixedPlaceholderKindError
from sqlbatch.exceptions import StatementExecutionFailure, UnbalancedConstructError
from sqlbatch.exceptions import ValidationError
from sqlbatch.executor import BatchResult, BatchState, execute
from sqlbatch.options import ConnectionOptions, SplitterOptions
from sqlbatch.splitter import split, split_with_placeholders
from sqlbatch.strategy import ErrorInfo
from sqlbatch.types import Flat, Grouped, PlaceholderKind, RawText, SplitStatements
from sqlbatch.types import SplitStatementsWithPlaceholders, Statement


def execute_batch(connection: Any, sql: Any, attributes: Mapping[str, Any] | None = None,
                  bind_values: Any = None, rollback: bool = True,
                  options: SplitterOptions | dict[str, Any] | None = None,
                  as_bool: bool = False, raise_on_failure: bool = False) -> BatchResult | bool:
    """Execute all statements in sql on connection.

    Returns a BatchResult, or only whether every statement succeeded when
    as_bool is set.
    """
    batch = MultiStatement(connection, rollback=rollback,
                           splitter_options=options or SplitterOptions())
    if as_bool:
        return batch.do_ok(sql, attributes, bind_values)
    return batch.do(sql, attributes, bind_values, raise_on_failure=raise_on_failure)


__all__ = [
    'connect',
    'BatchConnection',
    'MultiStatement',
    'execute_batch',
    'execute',
    'split',
    'split_with_placeholders',
    'resolve_statements',
    'bind',
    'FAILED',
    'BatchResult',
    'BatchState',
    'ErrorInfo',
    'Statement',
    'PlaceholderKind',
    'Flat',
    'Grouped',
    'RawText',
    'SplitStatements',
    'SplitStatementsWithPlaceholders',
    'SplitterOptions',
    'ConnectionOptions',
    'BatchError',
    'ValidationError',
    'UnbalancedConstructError',
    'MixedPlaceholderKindError',
    'AmbiguousBindError',
    'BindCountError',
    'StatementExecutionFailure',
    'DriverError',
]
