"""
Bind value grouping.

Turns the caller's bind values into one BindGroup per statement. Values come
either grouped (one entry per statement) or flat (one sequence for the whole
batch, partitioned by each statement's placeholder count).
"""
import logging
from collections.abc import Mapping, Sequence
from itertools import accumulate
from typing import Any

from sqlbatch.exceptions import AmbiguousBindError, BindCountError
from sqlbatch.exceptions import ValidationError
from sqlbatch.types import BindGroup, Flat, Grouped, Statement, is_group

from libb import issequence

logger = logging.getLogger(__name__)

__all__ = [
    'bind',
    'bind_flat',
    'bind_grouped',
]


def _as_group(value: Any) -> BindGroup:
    if value is None:
        return ()
    if isinstance(value, Mapping):
        return value
    return tuple(value)


def bind_grouped(statements: Sequence[Statement], groups: Sequence[Any]) -> list[BindGroup]:
    """One group per statement; missing trailing groups are empty, extra groups ignored.
    """
    if not all(is_group(g) for g in groups):
        raise AmbiguousBindError(
            'Flat bind values need placeholder counts: split with split_with_placeholders, '
            'pass (statements, counts), or group the values per statement')
    if len(groups) > len(statements):
        logger.debug(f'Ignoring {len(groups) - len(statements)} bind groups beyond the last statement')
    bound = [_as_group(g) for g in groups[:len(statements)]]
    bound.extend(() for _ in range(len(statements) - len(bound)))
    return bound


def bind_flat(statements: Sequence[Statement], values: Sequence[Any]) -> list[BindGroup]:
    """Partition flat values by consuming each statement's placeholder count in order.
    """
    if not all(s.has_placeholder_count for s in statements):
        raise AmbiguousBindError(
            'Flat bind values given for statements without placeholder counts')
    counts = [s.placeholder_count for s in statements]
    total = sum(counts)
    if len(values) != total:
        raise BindCountError(f'Statements have {total} placeholders, got {len(values)} bind values')
    bounds = [0, *accumulate(counts)]
    return [tuple(values[lo:hi]) for lo, hi in zip(bounds, bounds[1:])]


def bind(statements: Sequence[Statement], bind_values: Any = None) -> list[BindGroup]:
    """Resolve bind values into one BindGroup per statement, order preserved.

    Accepts:
    - None: no values for any statement
    - Grouped(...) or Flat(...): explicit shape
    - a plain sequence: grouped when every entry is a group (a sequence,
      a mapping or None), flat otherwise; use Flat(...) for flat values that
      are themselves sequences
    """
    if bind_values is None:
        return [() for _ in statements]
    if isinstance(bind_values, Grouped):
        return bind_grouped(statements, list(bind_values.groups))
    if isinstance(bind_values, Flat):
        return bind_flat(statements, list(bind_values.values))
    if isinstance(bind_values, str | bytes) or not issequence(bind_values):
        raise ValidationError(f'Bind values must be a sequence, got {type(bind_values).__name__}')

    values = list(bind_values)
    if all(is_group(v) for v in values):
        return bind_grouped(statements, values)
    return bind_flat(statements, values)
