"""
SQLite-specific strategy implementation.

Handles the sqlite3 module's transaction model:
- legacy transaction control through `isolation_level` (None means autocommit)
- the Python 3.12 `autocommit` attribute when it is set explicitly
- no implicit transaction before DDL, so batches open one with an explicit BEGIN
"""
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from sqlbatch.placeholders import Placeholder, rewrite
from sqlbatch.strategy.base import DialectStrategy, ErrorInfo, register_strategy
from sqlbatch.types import PlaceholderKind

if TYPE_CHECKING:
    from sqlbatch.options import ConnectionOptions

logger = logging.getLogger(__name__)

LEGACY_TRANSACTION_CONTROL = getattr(sqlite3, 'LEGACY_TRANSACTION_CONTROL', -1)


def _uses_legacy_control(raw_conn: Any) -> bool:
    return getattr(raw_conn, 'autocommit', LEGACY_TRANSACTION_CONTROL) == LEGACY_TRANSACTION_CONTROL


@register_strategy('sqlite')
class SQLiteStrategy(DialectStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def connect(self, options: 'ConnectionOptions') -> Any:
        """Open a sqlite3 connection in autocommit mode."""
        kwargs = {'isolation_level': None}
        if options.timeout:
            kwargs['timeout'] = options.timeout
        return sqlite3.connect(options.database, **kwargs)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite."""
        return ['database']

    def render(self, text: str, placeholders: list[Placeholder], kind: PlaceholderKind,
               params: tuple | dict) -> tuple[str, tuple | dict]:
        """Keep `?` and `:name`, rewrite `$n` to SQLite's `?n`.
        """
        if kind is PlaceholderKind.NUMBERED:
            text = rewrite(text, placeholders, lambda p: f'?{p.number}')
        return text, params

    def is_autocommit(self, raw_conn: Any) -> bool:
        if _uses_legacy_control(raw_conn):
            return raw_conn.isolation_level is None
        return bool(raw_conn.autocommit)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        if _uses_legacy_control(raw_conn):
            raw_conn.isolation_level = None
        else:
            raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        if _uses_legacy_control(raw_conn):
            raw_conn.isolation_level = 'DEFERRED'
        else:
            raw_conn.autocommit = False

    def save_settings(self, raw_conn: Any) -> dict[str, Any]:
        if _uses_legacy_control(raw_conn):
            return {'isolation_level': raw_conn.isolation_level}
        return {'autocommit': raw_conn.autocommit}

    def begin(self, raw_conn: Any) -> None:
        """Start a transaction unless the driver already holds one open.
        """
        if not raw_conn.in_transaction:
            raw_conn.execute('BEGIN')
            logger.debug('Issued BEGIN on sqlite connection')

    def error_info(self, exc: BaseException) -> ErrorInfo:
        return ErrorInfo(str(exc).strip() or type(exc).__name__,
                         sqlstate=getattr(exc, 'sqlite_errorname', None),
                         error_class=type(exc).__name__)
