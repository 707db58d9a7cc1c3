"""
Base strategy interface for driver-specific batch operations.

Defines the abstract base class that all dialect strategy implementations must
inherit from. The strategy pattern encapsulates what differs between DB-API
drivers (auto-commit switches, transaction start, parameter style, error
details) while the executor talks to one consistent interface.
"""
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlbatch.exceptions import ValidationError
from sqlbatch.placeholders import Placeholder, find_placeholders
from sqlbatch.placeholders import summarize
from sqlbatch.types import BindGroup, PlaceholderKind

if TYPE_CHECKING:
    from sqlbatch.options import ConnectionOptions, SplitterOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DialectStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('postgresql')
        class PostgresStrategy(DialectStrategy):
            ...
    """
    def decorator(cls: type['DialectStrategy']) -> type['DialectStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Failure detail reported by the driver for the last statement."""
    message: str
    sqlstate: str | None = None
    error_class: str | None = None


@dataclass(frozen=True, slots=True)
class PreparedStatement:
    """A statement rendered into the driver's parameter style."""
    text: str
    sql: str
    params: tuple | dict | None
    index: int = 0


class DialectStrategy(ABC):
    """Base class for driver-specific operations.
    """

    #: cursor.execute keyword arguments this driver accepts
    supported_attributes: frozenset[str] = frozenset()

    @contextmanager
    def _cursor(self, raw_conn: Any):
        """Context manager for cursor lifecycle.
        """
        cursor = raw_conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def execute(self, raw_conn: Any, prepared: PreparedStatement,
                attributes: Mapping[str, Any] | None = None) -> int:
        """Execute one prepared statement and return its rowcount.

        Driver errors propagate to the caller.
        """
        attributes = dict(attributes or {})
        with self._cursor(raw_conn) as cursor:
            if prepared.params is None:
                cursor.execute(prepared.sql, **attributes)
            else:
                cursor.execute(prepared.sql, prepared.params, **attributes)
            return cursor.rowcount

    def check_attributes(self, attributes: Mapping[str, Any] | None) -> None:
        """Reject execution attributes the driver does not understand.
        """
        unknown = set(attributes or ()) - self.supported_attributes
        if unknown:
            raise ValidationError(
                f'Unsupported execution attributes for {self.dialect_name}: {sorted(unknown)}')

    def prepare(self, text: str, values: BindGroup | None = None, index: int = 0,
                options: 'SplitterOptions | None' = None) -> PreparedStatement:
        """Render a statement's placeholders into the driver's parameter style.

        Raises MixedPlaceholderKindError before anything runs when the
        statement mixes placeholder kinds.
        """
        placeholders = find_placeholders(text, options)
        summary = summarize(text, placeholders)
        values = () if values is None else values
        if summary.kind is PlaceholderKind.NAMED:
            params = _named_params(summary.names, values)
        elif isinstance(values, Mapping):
            raise ValidationError(f'Statement {index} has no named placeholders, '
                                  f'got a mapping of bind values')
        else:
            params = tuple(values)
            if len(params) != summary.count:
                raise ValidationError(f'Statement {index} needs {summary.count} bind values, '
                                      f'got {len(params)}')
        sql, params = self.render(text, placeholders, summary.kind, params)
        return PreparedStatement(text, sql, params, index)

    @abstractmethod
    def render(self, text: str, placeholders: list[Placeholder], kind: PlaceholderKind,
               params: tuple | dict) -> tuple[str, tuple | dict | None]:
        """Rewrite placeholders and arrange params for the driver.

        Args:
            text: Statement text
            placeholders: Placeholders found in text, in source order
            kind: Placeholder kind used by the statement
            params: Positional values, or a name -> value mapping for named statements

        Returns
            (sql, params) ready for cursor.execute
        """

    @abstractmethod
    def is_autocommit(self, raw_conn: Any) -> bool:
        """Return whether the raw connection commits after every statement.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    def save_settings(self, raw_conn: Any) -> dict[str, Any]:
        """Capture the driver attributes that auto-commit switching touches.
        """
        return {'autocommit': raw_conn.autocommit}

    def restore_settings(self, raw_conn: Any, saved: Mapping[str, Any]) -> None:
        """Put back attributes captured by save_settings.

        Attributes already holding their saved value are left untouched.
        """
        for name, value in saved.items():
            if getattr(raw_conn, name) != value:
                setattr(raw_conn, name, value)

    @abstractmethod
    def begin(self, raw_conn: Any) -> None:
        """Open a transaction on a connection with auto-commit disabled.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    def error_info(self, exc: BaseException) -> ErrorInfo:
        """Extract failure detail from a driver exception.
        """
        return ErrorInfo(str(exc).strip() or type(exc).__name__,
                         error_class=type(exc).__name__)

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier (e.g., 'postgresql', 'sqlite')."""

    @abstractmethod
    def connect(self, options: 'ConnectionOptions') -> Any:
        """Open a raw DBAPI connection for the given options.

        Args:
            options: ConnectionOptions containing connection parameters

        Returns
            Raw DBAPI connection
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'ConnectionOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: ConnectionOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')


def _named_params(names: Sequence[str], values: BindGroup) -> dict[str, Any]:
    """Map values onto placeholder names, by key or by first-appearance order."""
    if isinstance(values, Mapping):
        missing = [n for n in names if n not in values]
        if missing:
            raise ValidationError(f'Missing bind values for named placeholders: {missing}')
        return {n: values[n] for n in names}
    if len(values) != len(names):
        raise ValidationError(f'Expected {len(names)} values for {list(names)}, got {len(values)}')
    return dict(zip(names, values))
