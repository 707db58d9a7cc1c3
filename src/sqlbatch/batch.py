"""
Multiple-statement batches on one connection.

    sql → as_source → split / placeholder metadata → bind → execute → BatchResult

`MultiStatement` is an immutable executor: its connection, rollback flag and
splitter options are fixed at construction and the `with_*` methods return
new instances.

Examples
    batch = MultiStatement(cn)
    batch.do('CREATE TABLE t (a); INSERT INTO t VALUES (?)', bind_values=[1])

    batch.with_rollback(False).do(['INSERT ...', 'UPDATE ...'])
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from sqlbatch.binder import bind
from sqlbatch.connection import BatchConnection
from sqlbatch.executor import BatchResult, execute
from sqlbatch.options import SplitterOptions
from sqlbatch.splitter import detect_placeholders, load_splitter_options, split
from sqlbatch.splitter import split_statements, split_with_placeholders
from sqlbatch.types import RawText, SplitStatements, SplitStatementsWithPlaceholders
from sqlbatch.types import Statement, as_source

logger = logging.getLogger(__name__)

__all__ = [
    'MultiStatement',
    'resolve_statements',
]


def resolve_statements(sql: Any, options: SplitterOptions) -> list[Statement]:
    """Turn any accepted statement argument into Statement objects.

    Raw text is split with placeholder detection. Pre-split strings carry no
    placeholder count; pre-split strings with counts carry counts only.
    """
    source = as_source(sql)
    match source:
        case RawText(text=text):
            return [detect_placeholders(s, options) for s in split_statements(text, options)]
        case SplitStatements(statements=statements):
            return [Statement(text, None, None, None) for text in statements]
        case SplitStatementsWithPlaceholders(statements=statements, counts=counts):
            return [Statement(text, count, None, None) for text, count in zip(statements, counts)]
    return source


@dataclass(frozen=True)
class MultiStatement:
    """Executes multiple SQL statements on one connection.

    Args:
        connection: DB-API connection, SQLAlchemy Connection or BatchConnection
        rollback: Run each batch in one transaction rolled back on failure
        splitter_options: Options used to split raw SQL text
    """
    connection: BatchConnection
    rollback: bool = True
    splitter_options: SplitterOptions = field(default_factory=SplitterOptions)

    def __post_init__(self):
        if not isinstance(self.connection, BatchConnection):
            object.__setattr__(self, 'connection', BatchConnection(self.connection))
        if not isinstance(self.splitter_options, SplitterOptions):
            object.__setattr__(self, 'splitter_options',
                               load_splitter_options(self.splitter_options))

    def with_connection(self, connection: Any) -> 'MultiStatement':
        return replace(self, connection=connection)

    def with_rollback(self, rollback: bool) -> 'MultiStatement':
        return replace(self, rollback=rollback)

    def with_splitter_options(self, options: SplitterOptions | dict[str, Any] | None = None,
                              **kw: Any) -> 'MultiStatement':
        if options is None:
            options = self.splitter_options
        return replace(self, splitter_options=load_splitter_options(options, **kw))

    def split(self, sql: str) -> list[str]:
        """Split sql into statement texts with this batch's splitter options."""
        return split(sql, self.splitter_options)

    def split_with_placeholders(self, sql: str) -> list[Statement]:
        """Split sql into statements carrying placeholder counts."""
        return split_with_placeholders(sql, self.splitter_options)

    def do(self, sql: Any, attributes: Mapping[str, Any] | None = None,
           bind_values: Any = None, raise_on_failure: bool = False) -> BatchResult:
        """Execute all statements in sql.

        Args:
            sql: SQL text, a sequence of statements (strings or Statement
                objects), or a (statements, placeholder counts) pair
            attributes: Driver execution attributes applied to every statement
            bind_values: Flat values for the whole batch, values grouped per
                statement, or an explicit Flat(...) / Grouped(...)
            raise_on_failure: Raise StatementExecutionFailure instead of
                returning a failed result

        Returns
            BatchResult with one entry per executed statement
        """
        statements = resolve_statements(sql, self.splitter_options)
        bind_groups = bind(statements, bind_values)
        logger.debug(f'Executing batch of {len(statements)} statements, rollback={self.rollback}')
        return execute(self.connection, statements, bind_groups, attributes,
                       rollback=self.rollback, raise_on_failure=raise_on_failure,
                       options=self.splitter_options)

    def do_ok(self, sql: Any, attributes: Mapping[str, Any] | None = None,
              bind_values: Any = None) -> bool:
        """Execute all statements in sql, reporting only whether all succeeded."""
        return self.do(sql, attributes, bind_values).success
