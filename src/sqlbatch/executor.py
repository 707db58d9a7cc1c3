"""
Sequential batch execution with optional all-or-nothing rollback.

With rollback enabled the batch runs inside one transaction:

    IDLE → TRANSACTION_OPEN → ALL_COMMITTED | ROLLED_BACK

Without it statements run under the connection's own auto-commit policy:

    IDLE → RUNNING → COMPLETED | STOPPED_ON_FAILURE

Either way execution stops at the first failing statement. Every statement
is rendered for the driver before the first one runs, so bind and
placeholder errors never leave partial side effects.
"""
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlbatch.connection import FAILED, BatchConnection
from sqlbatch.exceptions import StatementExecutionFailure, ValidationError
from sqlbatch.options import SplitterOptions
from sqlbatch.strategy import PreparedStatement
from sqlbatch.types import BindGroup, Statement

logger = logging.getLogger(__name__)

__all__ = [
    'BatchState',
    'BatchResult',
    'execute',
]


class BatchState(Enum):
    """Lifecycle of one execute() call."""
    IDLE = 'idle'
    TRANSACTION_OPEN = 'transaction_open'
    ALL_COMMITTED = 'all_committed'
    ROLLED_BACK = 'rolled_back'
    RUNNING = 'running'
    COMPLETED = 'completed'
    STOPPED_ON_FAILURE = 'stopped_on_failure'


@dataclass(frozen=True)
class BatchResult:
    """Ordered outcome of a batch.

    `results` holds the driver result (rowcount) of every statement that
    succeeded and was not rolled back. `failure` is set when a statement
    failed.
    """
    results: tuple[Any, ...]
    success: bool
    state: BatchState
    failure: StatementExecutionFailure | None = None

    def __bool__(self) -> bool:
        return self.success

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.results)

    def __getitem__(self, index):
        return self.results[index]


def _prepare(connection: BatchConnection, statements: Sequence[Statement],
             bind_groups: Sequence[BindGroup], attributes: Mapping[str, Any] | None,
             options: SplitterOptions | None) -> list[PreparedStatement]:
    if len(bind_groups) != len(statements):
        raise ValidationError(f'Got {len(bind_groups)} bind groups for {len(statements)} statements')
    connection.strategy.check_attributes(attributes)
    return [connection.prepare(statement.text, values, i, options)
            for i, (statement, values) in enumerate(zip(statements, bind_groups))]


def _run(connection: BatchConnection, prepared: Sequence[PreparedStatement],
         attributes: Mapping[str, Any] | None) -> tuple[list[Any], StatementExecutionFailure | None]:
    """Execute statements in order up to the first failure."""
    results = []
    for statement in prepared:
        try:
            result = connection.execute_one(statement, attributes)
        except StatementExecutionFailure as failure:
            return results, failure
        if result is FAILED:
            return results, StatementExecutionFailure(statement.index, statement.text,
                                                      connection.error_info())
        results.append(result)
    return results, None


def _execute_in_transaction(connection: BatchConnection, prepared: Sequence[PreparedStatement],
                            attributes: Mapping[str, Any] | None) -> BatchResult:
    with connection.settings(autocommit=False, strict_error=True):
        connection.begin()
        logger.debug(f'Batch state {BatchState.TRANSACTION_OPEN.value}: {len(prepared)} statements')
        try:
            results, failure = _run(connection, prepared, attributes)
            if failure is None:
                connection.commit()
        except BaseException:
            connection.rollback()
            raise
        if failure is not None:
            connection.rollback()
            logger.debug(f'Batch state {BatchState.ROLLED_BACK.value} after statement {failure.index}')
            return BatchResult((), False, BatchState.ROLLED_BACK, failure)
    logger.debug(f'Batch state {BatchState.ALL_COMMITTED.value}')
    return BatchResult(tuple(results), True, BatchState.ALL_COMMITTED)


def _execute_sequentially(connection: BatchConnection, prepared: Sequence[PreparedStatement],
                          attributes: Mapping[str, Any] | None) -> BatchResult:
    logger.debug(f'Batch state {BatchState.RUNNING.value}: {len(prepared)} statements')
    results, failure = _run(connection, prepared, attributes)
    if failure is not None:
        logger.debug(f'Batch state {BatchState.STOPPED_ON_FAILURE.value} at statement {failure.index}')
        return BatchResult(tuple(results), False, BatchState.STOPPED_ON_FAILURE, failure)
    logger.debug(f'Batch state {BatchState.COMPLETED.value}')
    return BatchResult(tuple(results), True, BatchState.COMPLETED)


def execute(connection: BatchConnection, statements: Sequence[Statement],
            bind_groups: Sequence[BindGroup] | None = None,
            attributes: Mapping[str, Any] | None = None, rollback: bool = True,
            raise_on_failure: bool = False,
            options: SplitterOptions | None = None) -> BatchResult:
    """Execute statements in order on one connection.

    Args:
        connection: BatchConnection to run on
        statements: Statements in execution order
        bind_groups: One group of bind values per statement, None for no values
        attributes: Driver execution attributes applied to every statement
        rollback: Run in one transaction, rolled back entirely on the first failure
        raise_on_failure: Raise StatementExecutionFailure instead of returning
            a failed BatchResult (after rollback and settings restoration)
        options: Splitter options whose quote and comment rules apply to
            placeholder rendering

    Returns
        BatchResult, empty and unsuccessful when a rolled-back batch failed
    """
    if bind_groups is None:
        bind_groups = [() for _ in statements]
    prepared = _prepare(connection, statements, bind_groups, attributes, options)

    if rollback:
        result = _execute_in_transaction(connection, prepared, attributes)
    else:
        result = _execute_sequentially(connection, prepared, attributes)

    if result.failure is not None and raise_on_failure:
        raise result.failure
    return result
