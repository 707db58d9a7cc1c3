"""
Dialect strategies, looked up by name or by the driver that made a connection.

    driver module    dialect       strategy
    -------------    ----------    ----------------
    psycopg          postgresql    PostgresStrategy
    sqlite3          sqlite        SQLiteStrategy

Strategies are stateless, so one cached instance serves every connection of
a dialect.
"""
from functools import lru_cache
from typing import Any

from sqlbatch.exceptions import ValidationError
from sqlbatch.strategy.base import _STRATEGY_REGISTRY
from sqlbatch.strategy.base import DialectStrategy as DialectStrategy
from sqlbatch.strategy.base import ErrorInfo as ErrorInfo
from sqlbatch.strategy.base import PreparedStatement as PreparedStatement
from sqlbatch.strategy.base import register_strategy as register_strategy
from sqlbatch.strategy.postgres import PostgresStrategy as PostgresStrategy
from sqlbatch.strategy.sqlite import SQLiteStrategy as SQLiteStrategy

DRIVER_DIALECTS = {
    'psycopg': 'postgresql',
    'sqlite3': 'sqlite',
}


def strategy_class(dialect: str) -> type[DialectStrategy]:
    """Registered strategy class for a dialect name, ValueError if there is none."""
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValueError(f'drivername must be one of: {sorted(_STRATEGY_REGISTRY)}') from None


@lru_cache(maxsize=8)
def get_strategy(dialect: str) -> DialectStrategy:
    return strategy_class(dialect)()


def dialect_of(raw_conn: Any) -> str:
    """Dialect of a raw DB-API connection, from the package that defines its type.
    """
    package = type(raw_conn).__module__.partition('.')[0]
    if package not in DRIVER_DIALECTS:
        raise ValidationError(f'No dialect strategy for {type(raw_conn).__qualname__} '
                              f'connections from {package!r}; '
                              f'supported drivers: {sorted(DRIVER_DIALECTS)}')
    return DRIVER_DIALECTS[package]


def strategy_for(raw_conn: Any) -> DialectStrategy:
    return get_strategy(dialect_of(raw_conn))
