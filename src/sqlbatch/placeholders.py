"""
Placeholder detection and rewriting.

Placeholders are only recognized in code, never inside quotes or comments,
using the same lexical rules as statement splitting:

- `?`      positional
- `$n`     numbered (1-based)
- `:name`  named (`::` casts and `:=` are not placeholders)

A statement may use only one kind.
"""
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace

from sqlbatch.exceptions import MixedPlaceholderKindError
from sqlbatch.options import DEFAULT_SPLITTER_OPTIONS, SplitterOptions
from sqlbatch.scanner import EventType, Scanner
from sqlbatch.types import PlaceholderKind

__all__ = [
    'Placeholder',
    'PlaceholderSummary',
    'code_spans',
    'find_placeholders',
    'summarize',
    'rewrite',
]

_PLACEHOLDER = re.compile(r"""
    (?P<positional>\?)
    |(?<![\w$])\$(?P<number>\d+)
    |(?<![:\w]):(?P<name>[A-Za-z_][A-Za-z0-9_]*)
""", re.VERBOSE)


@dataclass(slots=True)
class Placeholder:
    """A placeholder found in statement text."""
    kind: PlaceholderKind
    start: int
    end: int
    name: str | None = None         # for :name
    number: int | None = None       # for $n


@dataclass(slots=True)
class PlaceholderSummary:
    kind: PlaceholderKind
    count: int
    names: tuple[str, ...] = ()


def _detection_options(options: SplitterOptions) -> SplitterOptions:
    """Same quote and comment rules, without statement-level directives."""
    return replace(options, begin_end=False, delimiter_keyword=None,
                   slash_terminates=False, strict=False)


def code_spans(text: str, options: SplitterOptions | None = None) -> Iterator[tuple[int, int]]:
    """Yield (start, end) spans of text lying outside quotes and comments.
    """
    options = _detection_options(options or DEFAULT_SPLITTER_OPTIONS)
    start = 0
    for event in Scanner(text, options):
        if event.type in {EventType.ENTER_COMMENT, EventType.ENTER_STRING}:
            if event.start > start:
                yield start, event.start
        elif event.type in {EventType.EXIT_COMMENT, EventType.EXIT_STRING}:
            start = event.end
    if start < len(text):
        yield start, len(text)


def find_placeholders(text: str, options: SplitterOptions | None = None) -> list[Placeholder]:
    """Find placeholders in code regions of a statement, in source order.
    """
    found = []
    for start, end in code_spans(text, options):
        for match in _PLACEHOLDER.finditer(text, start, end):
            if match.group('positional'):
                found.append(Placeholder(PlaceholderKind.POSITIONAL, *match.span()))
            elif match.group('number'):
                found.append(Placeholder(PlaceholderKind.NUMBERED, *match.span(),
                                         number=int(match.group('number'))))
            else:
                found.append(Placeholder(PlaceholderKind.NAMED, *match.span(),
                                         name=match.group('name')))
    return found


def summarize(text: str, placeholders: list[Placeholder]) -> PlaceholderSummary:
    """Reduce placeholders to the kind and number of values a statement needs.

    Positional placeholders count every occurrence, numbered placeholders
    need as many values as the highest number, and named placeholders count
    distinct names.
    """
    kinds = {p.kind for p in placeholders}
    if len(kinds) > 1:
        raise MixedPlaceholderKindError(text, kinds)
    if not kinds:
        return PlaceholderSummary(PlaceholderKind.NONE, 0)

    kind = kinds.pop()
    if kind is PlaceholderKind.POSITIONAL:
        return PlaceholderSummary(kind, len(placeholders))
    if kind is PlaceholderKind.NUMBERED:
        return PlaceholderSummary(kind, max(p.number for p in placeholders))
    names = tuple(dict.fromkeys(p.name for p in placeholders))
    return PlaceholderSummary(kind, len(names), names)


def rewrite(text: str, placeholders: list[Placeholder],
            render: Callable[[Placeholder], str],
            escape: Callable[[str], str] | None = None) -> str:
    """Replace each placeholder with `render(placeholder)`.

    Text between placeholders passes through `escape` when given.
    """
    parts = []
    last = 0
    for placeholder in placeholders:
        segment = text[last:placeholder.start]
        parts.append(escape(segment) if escape else segment)
        parts.append(render(placeholder))
        last = placeholder.end
    segment = text[last:]
    parts.append(escape(segment) if escape else segment)
    return ''.join(parts)
