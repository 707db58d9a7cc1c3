"""
Value types shared by the splitter, binder and executor.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlbatch.exceptions import ValidationError

from libb import issequence

__all__ = [
    'PlaceholderKind',
    'Statement',
    'BindGroup',
    'Grouped',
    'Flat',
    'RawText',
    'SplitStatements',
    'SplitStatementsWithPlaceholders',
    'StatementSource',
    'as_source',
    'is_group',
]


class PlaceholderKind(Enum):
    """Placeholder style used by a statement."""
    NONE = 'none'
    POSITIONAL = 'positional'   # ?
    NUMBERED = 'numbered'       # $1
    NAMED = 'named'             # :name


@dataclass(frozen=True, slots=True)
class Statement:
    """One atomic statement of a batch.

    `placeholder_count` and `placeholder_kind` are None when the statement
    was supplied pre-split without placeholder metadata. `terminator` is the
    token that closed the statement, None when the input ended without one.
    """
    text: str
    placeholder_count: int | None = 0
    placeholder_kind: PlaceholderKind | None = PlaceholderKind.NONE
    terminator: str | None = ';'
    placeholder_names: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.text

    @property
    def has_placeholder_count(self) -> bool:
        return self.placeholder_count is not None


BindGroup = tuple[Any, ...] | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Grouped:
    """Bind values already grouped per statement.

    Entry i holds the values for statement i (a sequence, a mapping for
    named placeholders, or None for no values).
    """
    groups: Sequence[Any]


@dataclass(frozen=True, slots=True)
class Flat:
    """One flat sequence of bind values for the whole batch.
    """
    values: Sequence[Any]


@dataclass(frozen=True, slots=True)
class RawText:
    text: str


@dataclass(frozen=True, slots=True)
class SplitStatements:
    statements: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SplitStatementsWithPlaceholders:
    statements: tuple[str, ...]
    counts: tuple[int, ...]

    def __post_init__(self):
        if len(self.statements) != len(self.counts):
            raise ValidationError(
                f'Got {len(self.counts)} placeholder counts for {len(self.statements)} statements')
        if any(not isinstance(c, int) or c < 0 for c in self.counts):
            raise ValidationError(f'Placeholder counts must be non-negative integers: {self.counts}')


StatementSource = RawText | SplitStatements | SplitStatementsWithPlaceholders


def is_group(value: Any) -> bool:
    """Check whether a value can be the bind group of one statement."""
    if value is None or isinstance(value, Mapping):
        return True
    return issequence(value) and not isinstance(value, str | bytes)


def as_source(sql: Any) -> StatementSource | list[Statement]:
    """Resolve the polymorphic statement argument once.

    Accepts:
    - a SQL string -> RawText
    - a sequence of Statement -> returned as a list unchanged
    - a sequence of strings -> SplitStatements
    - a pair (sequence of strings, sequence of counts) -> SplitStatementsWithPlaceholders
    - an already tagged source -> returned unchanged
    """
    if isinstance(sql, RawText | SplitStatements | SplitStatementsWithPlaceholders):
        return sql
    if isinstance(sql, str):
        return RawText(sql)
    if not issequence(sql):
        raise ValidationError(f'Cannot execute statements from {type(sql).__name__}')

    items = list(sql)
    if all(isinstance(item, Statement) for item in items):
        return items
    if all(isinstance(item, str) for item in items):
        return SplitStatements(tuple(items))
    if (isinstance(sql, tuple) and len(items) == 2
            and issequence(items[0]) and issequence(items[1])
            and all(isinstance(s, str) for s in items[0])):
        return SplitStatementsWithPlaceholders(tuple(items[0]), tuple(items[1]))
    raise ValidationError('Statements must be a SQL string, a sequence of statements, '
                          'or a (statements, placeholder counts) pair')
