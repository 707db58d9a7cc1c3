"""
Statement splitting.

Drives the scanner over a SQL text and closes a statement at each terminator
seen outside quotes, comments and BEGIN/END blocks:

    SQL text → Scanner events → statement spans → trimmed Statement objects
                                                   (+ placeholder metadata)

Main entry points:
- `split(text, options)` - statement texts
- `split_with_placeholders(text, options)` - Statement objects with
  placeholder count and kind
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from sqlbatch.options import DEFAULT_SPLITTER_OPTIONS, SplitterOptions
from sqlbatch.placeholders import find_placeholders, summarize
from sqlbatch.scanner import EventType, Scanner
from sqlbatch.types import Statement

from libb import load_options

logger = logging.getLogger(__name__)

__all__ = [
    'split',
    'split_with_placeholders',
    'split_statements',
    'detect_placeholders',
    'load_splitter_options',
]


@dataclass(slots=True)
class _Span:
    """Source span of one statement before trimming."""
    start: int
    end: int
    terminator: str | None
    comments: list[tuple[int, int]] = field(default_factory=list)


def load_splitter_options(options: SplitterOptions | dict[str, Any] | str | None = None,
                          config: Any | None = None, **kw: Any) -> SplitterOptions:
    """Build SplitterOptions from an options object, a dict, or a config setting.

    Keyword arguments override individual options.
    """
    if options is None and not kw:
        return DEFAULT_SPLITTER_OPTIONS
    if options is None:
        return SplitterOptions(**kw)
    if isinstance(options, SplitterOptions):
        return replace(options, **kw) if kw else options
    options_func = load_options(cls=SplitterOptions)(lambda o, c: o)
    return options_func(options, config, **kw)


def _spans(text: str, options: SplitterOptions) -> list[_Span]:
    spans = []
    start = 0
    comments = []
    comment_start = 0
    for event in Scanner(text, options):
        match event.type:
            case EventType.ENTER_COMMENT:
                comment_start = event.start
            case EventType.EXIT_COMMENT:
                comments.append((comment_start, event.end))
            case EventType.TERMINATOR:
                spans.append(_Span(start, event.start, event.text, comments))
                start, comments = event.end, []
            case EventType.DELIMITER_CHANGE:
                # directive closes whatever precedes it
                spans.append(_Span(start, event.start, None, comments))
                start, comments = event.end, []
    spans.append(_Span(start, len(text), None, comments))
    return spans


def _strip_comments(text: str, span: _Span) -> str:
    parts = []
    last = span.start
    for start, end in span.comments:
        parts.append(text[last:start])
        if text.startswith('/*', start):
            parts.append(' ')
        last = end
    parts.append(text[last:span.end])
    return ''.join(parts)


def split_statements(text: str, options: SplitterOptions | None = None) -> list[Statement]:
    """Split text into Statement objects without placeholder detection.

    Placeholder metadata is left at its "none" default; use
    `split_with_placeholders` to fill it in.
    """
    options = options or DEFAULT_SPLITTER_OPTIONS
    statements = []
    for span in _spans(text, options):
        code = _strip_comments(text, span).strip()
        body = text[span.start:span.end].strip() if options.keep_comments else code
        if not code and not options.keep_empty_statements:
            continue
        if options.keep_terminators and span.terminator is not None:
            body += span.terminator
        statements.append(Statement(body, terminator=span.terminator))
    logger.debug(f'Split text into {len(statements)} statements')
    return statements


def detect_placeholders(statement: Statement, options: SplitterOptions | None = None) -> Statement:
    """Return a copy of statement with placeholder count, kind and names filled in.

    Raises MixedPlaceholderKindError when the statement mixes kinds.
    """
    summary = summarize(statement.text, find_placeholders(statement.text, options))
    return Statement(statement.text, summary.count, summary.kind,
                     statement.terminator, summary.names)


def split(text: str, options: SplitterOptions | dict[str, Any] | None = None,
          **kw: Any) -> list[str]:
    """Split a multi-statement SQL text into trimmed statement texts.

    Terminators are dropped (unless keep_terminators), empty statements
    from consecutive or trailing terminators are skipped.
    """
    options = load_splitter_options(options, **kw)
    return [statement.text for statement in split_statements(text, options)]


def split_with_placeholders(text: str, options: SplitterOptions | dict[str, Any] | None = None,
                            **kw: Any) -> list[Statement]:
    """Split a multi-statement SQL text into Statement objects with placeholder metadata.
    """
    options = load_splitter_options(options, **kw)
    return [detect_placeholders(statement, options)
            for statement in split_statements(text, options)]
