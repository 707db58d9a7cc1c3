"""
Connection capability used by the batch executor.

This module provides:
1. The `connect()` function for opening a new sqlite or postgresql connection
2. The `BatchConnection` class that adapts any DB-API connection (sqlite3,
   psycopg, or a SQLAlchemy Connection) to the operations the executor needs:

- execute_one(statement, attributes, values) - run one statement
- begin() / commit() / rollback() - transaction control
- autocommit / strict_error - connection settings, scoped with settings()
- error_info() - detail of the last failure
"""
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import fields
from typing import Any

from sqlbatch.exceptions import DriverError, StatementExecutionFailure
from sqlbatch.options import ConnectionOptions, SplitterOptions
from sqlbatch.strategy import DialectStrategy, ErrorInfo, PreparedStatement
from sqlbatch.strategy import get_strategy, strategy_for
from sqlbatch.types import BindGroup

from libb import load_options

__all__ = [
    'BatchConnection',
    'FAILED',
    'connect',
    'unwrap_connection',
]

logger = logging.getLogger(__name__)


class _Failed:
    """Failure marker returned by execute_one when strict_error is off."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'FAILED'

    def __bool__(self) -> bool:
        return False


FAILED = _Failed()


def unwrap_connection(connection: Any) -> Any:
    """Driver connection behind a SQLAlchemy Connection or pool proxy.

    Anything else is assumed to be a DB-API connection already.
    """
    if hasattr(connection, 'driver_connection'):
        return connection.driver_connection
    if hasattr(getattr(connection, 'connection', None), 'driver_connection'):
        return connection.connection.driver_connection
    return connection


class BatchConnection:
    """Wraps a DB-API connection with the operations of a statement batch.

    With `strict_error` on (the default) a failing statement raises
    StatementExecutionFailure. With it off, execute_one returns FAILED and the
    detail stays available through error_info().
    """

    def __init__(self, connection: Any, strict_error: bool = True,
                 strategy: DialectStrategy | None = None) -> None:
        self.connection = connection
        self.raw_connection = unwrap_connection(connection)
        self.strategy = strategy or strategy_for(self.raw_connection)
        self.strict_error = strict_error
        self._error_info: ErrorInfo | None = None

    @property
    def dialect(self) -> str:
        return self.strategy.dialect_name

    @property
    def autocommit(self) -> bool:
        return self.strategy.is_autocommit(self.raw_connection)

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        if value:
            self.strategy.enable_autocommit(self.raw_connection)
        else:
            self.strategy.disable_autocommit(self.raw_connection)

    @contextmanager
    def settings(self, autocommit: bool, strict_error: bool) -> Iterator['BatchConnection']:
        """Temporarily apply autocommit and strict_error settings.

        The original driver settings are restored on every exit path. A
        connection already in the requested mode is left alone, so a psycopg
        connection with a transaction open is joined rather than switched.
        """
        saved = self.strategy.save_settings(self.raw_connection)
        saved_strict = self.strict_error
        logger.debug(f'Saved connection settings {saved}, strict_error={saved_strict}')
        try:
            if self.autocommit != autocommit:
                self.autocommit = autocommit
            self.strict_error = strict_error
            yield self
        finally:
            self.strict_error = saved_strict
            self.strategy.restore_settings(self.raw_connection, saved)
            logger.debug(f'Restored connection settings {saved}, strict_error={saved_strict}')

    def begin(self) -> None:
        self.strategy.begin(self.raw_connection)
        logger.debug(f'Started transaction for connection {id(self.raw_connection)}')

    def commit(self) -> None:
        self.raw_connection.commit()
        logger.debug(f'Committed transaction for connection {id(self.raw_connection)}')

    def rollback(self) -> None:
        self.raw_connection.rollback()
        logger.warning('Rolling back the current transaction')

    def error_info(self) -> ErrorInfo | None:
        """Detail of the last failed statement, None after a success."""
        return self._error_info

    def prepare(self, text: str, values: BindGroup | None = None, index: int = 0,
                options: SplitterOptions | None = None) -> PreparedStatement:
        """Render a statement and its values for this connection's driver.
        """
        return self.strategy.prepare(text, values, index, options)

    def execute_one(self, statement: str | PreparedStatement,
                    attributes: Mapping[str, Any] | None = None,
                    values: BindGroup | None = None) -> Any:
        """Execute one statement and return the driver's rowcount.

        Returns FAILED, or raises StatementExecutionFailure when strict_error
        is on, if the driver reports an error.
        """
        if not isinstance(statement, PreparedStatement):
            statement = self.prepare(statement, values)
        self.strategy.check_attributes(attributes)
        logger.debug(f'SQL:\n{statement.sql}\nargs: {statement.params}')
        try:
            result = self.strategy.execute(self.raw_connection, statement, attributes)
        except DriverError as err:
            self._error_info = self.strategy.error_info(err)
            logger.error(f'Error with statement {statement.index}:\nSQL:\n{statement.sql}\n'
                         f'args: {statement.params}\n{self._error_info.message}')
            if self.strict_error:
                raise StatementExecutionFailure(statement.index, statement.text,
                                                self._error_info) from err
            return FAILED
        self._error_info = None
        return result

    def close(self) -> None:
        self.raw_connection.close()

    def __repr__(self) -> str:
        return f'<BatchConnection {self.dialect} strict_error={self.strict_error}>'


@load_options(cls=ConnectionOptions)
def connect(options: ConnectionOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> BatchConnection:
    """Open a database connection ready for batch execution

    Args:
        options: Can be:
                - ConnectionOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    The connection starts in autocommit mode.

    Returns
        BatchConnection wrapping the driver connection
    """
    if isinstance(options, ConnectionOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=ConnectionOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    strategy = get_strategy(options.drivername)
    raw_conn = strategy.connect(options)
    logger.debug(f'Connected to {options.drivername} database {options.database}')
    return BatchConnection(raw_conn, strategy=strategy)
