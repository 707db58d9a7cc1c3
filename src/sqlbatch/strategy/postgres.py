"""
PostgreSQL-specific strategy implementation.

Handles psycopg 3 specifics:
- `autocommit` attribute on the connection, implicit transaction start
- `%s` / `%(name)s` parameter style, so literal `%` must be doubled
- reordering of values for `$n` placeholders
- SQLSTATE codes on driver errors
"""
import logging
from typing import TYPE_CHECKING, Any

import psycopg
from sqlbatch.placeholders import Placeholder, rewrite
from sqlbatch.strategy.base import DialectStrategy, ErrorInfo, register_strategy
from sqlbatch.types import PlaceholderKind

if TYPE_CHECKING:
    from sqlbatch.options import ConnectionOptions

logger = logging.getLogger(__name__)


def _escape_percent(segment: str) -> str:
    return segment.replace('%', '%%')


@register_strategy('postgresql')
class PostgresStrategy(DialectStrategy):
    """PostgreSQL-specific operations.
    """

    supported_attributes = frozenset({'prepare', 'binary'})

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def connect(self, options: 'ConnectionOptions') -> Any:
        """Open a psycopg connection in autocommit mode."""
        kwargs = {
            'host': options.hostname,
            'user': options.username,
            'password': options.password,
            'dbname': options.database,
            'application_name': options.appname,
            'autocommit': True,
        }
        if options.port:
            kwargs['port'] = options.port
        if options.timeout:
            kwargs['connect_timeout'] = options.timeout
        return psycopg.connect(**kwargs)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'database']

    def render(self, text: str, placeholders: list[Placeholder], kind: PlaceholderKind,
               params: tuple | dict) -> tuple[str, tuple | dict | None]:
        """Rewrite placeholders to psycopg's `%s` / `%(name)s` style.

        Without values the text is passed through untouched and no params are
        sent, so psycopg does not interpret `%`.
        """
        if kind is PlaceholderKind.NONE and not params:
            return text, None
        if kind is PlaceholderKind.NAMED:
            return rewrite(text, placeholders, lambda p: f'%({p.name})s', _escape_percent), params
        if kind is PlaceholderKind.NUMBERED:
            ordered = tuple(params[p.number - 1] for p in placeholders)
            return rewrite(text, placeholders, lambda p: '%s', _escape_percent), ordered
        return rewrite(text, placeholders, lambda p: '%s', _escape_percent), params

    def is_autocommit(self, raw_conn: Any) -> bool:
        return bool(raw_conn.autocommit)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    def begin(self, raw_conn: Any) -> None:
        """psycopg opens the transaction with the first statement."""

    def error_info(self, exc: BaseException) -> ErrorInfo:
        diag = getattr(exc, 'diag', None)
        message = getattr(diag, 'message_primary', None) or str(exc).strip()
        return ErrorInfo(message or type(exc).__name__,
                         sqlstate=getattr(exc, 'sqlstate', None),
                         error_class=type(exc).__name__)
