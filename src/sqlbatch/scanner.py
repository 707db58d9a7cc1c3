"""
Lexical scanning of multi-statement SQL text.

The scanner walks the text once and yields lexical events lazily:

    text → code / comment / string modes → events (comment, string, terminator,
                                                   block, delimiter change)

Recognized constructs, none of which ever produce a statement boundary:
- `--` line comments and `/* ... */` block comments (optionally nested)
- single-quoted strings and double-quoted identifiers, with doubled-quote escapes
- dollar-quoted strings `$tag$ ... $tag$`, closed only by the same tag
- BEGIN/CASE ... END blocks; a terminator only counts at block depth 0

A custom delimiter directive (`DELIMITER //` on a line of its own) reassigns
the terminator for the rest of the text. It is only recognized at block
depth 0.
"""
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, auto

from sqlbatch.exceptions import UnbalancedConstructError
from sqlbatch.options import DEFAULT_SPLITTER_OPTIONS, SplitterOptions

logger = logging.getLogger(__name__)

__all__ = [
    'EventType',
    'Event',
    'Mode',
    'ScannerState',
    'Scanner',
    'scan',
]


class Mode(Enum):
    """Lexical mode the scanner is in."""
    CODE = auto()
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()
    SINGLE_QUOTE = auto()
    DOUBLE_QUOTE = auto()
    DOLLAR_QUOTE = auto()


class EventType(Enum):
    """Lexical events emitted by the scanner."""
    ENTER_COMMENT = auto()
    EXIT_COMMENT = auto()
    ENTER_STRING = auto()
    EXIT_STRING = auto()
    TERMINATOR = auto()
    BEGIN_BLOCK = auto()
    END_BLOCK = auto()
    DELIMITER_CHANGE = auto()


@dataclass(slots=True)
class Event:
    """Event from SQL scanning.

    `text` holds the marker that caused the event: the comment opener, the
    quote token, the terminator, the block keyword or the new delimiter.
    `depth` is the block depth after the event.
    """
    type: EventType
    start: int
    end: int
    text: str = ''
    depth: int = 0


@dataclass(slots=True)
class ScannerState:
    """Mutable state of a single scanning pass."""
    terminator: str = ';'
    mode: Mode = Mode.CODE
    quote: str = ''                 # closing token of the open string
    opened_at: int = 0              # offset where the open quote/comment began
    comment_depth: int = 0
    blocks: list[int] = field(default_factory=list)  # offsets of open BEGIN/CASE

    @property
    def block_depth(self) -> int:
        return len(self.blocks)


# =============================================================================
# Patterns
# =============================================================================

_WORD = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

_DOLLAR_TAG = re.compile(r'\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$')

_NEXT_WORD = re.compile(r'\s*([A-Za-z_][A-Za-z0-9_]*)')

_NEXT_TOKEN = re.compile(r'\s*([A-Za-z_][A-Za-z0-9_]*|\S)')

_SLASH_LINE = re.compile(r'[ \t]*/[ \t]*(?:\r?\n|$)')

# BEGIN followed by one of these starts a transaction, not a block
_TRANSACTION_WORDS = frozenset({
    'TRANSACTION', 'WORK', 'TRAN', 'DEFERRED', 'IMMEDIATE', 'EXCLUSIVE',
    'ISOLATION', 'READ',
})

# END followed by one of these closes a control statement, not a block
_END_SUFFIXES = frozenset({'IF', 'LOOP', 'WHILE', 'REPEAT', 'FOR', 'CASE'})

# BEGIN or END after one of these is a column name
_COLUMN_PRECEDERS = frozenset({
    ',', '(', '=', '<', '>', 'SELECT', 'BY', 'WHERE', 'AND', 'OR', 'DISTINCT', 'SET',
})

# BEGIN followed by one of these is a column name
_COLUMN_FOLLOWERS = frozenset({
    ',', ')', '=', '<', '>', '.', 'FROM', 'AS', 'IS', 'IN', 'LIKE', 'BETWEEN', 'AND', 'OR',
})

_QUOTE_MODES = {
    "'": Mode.SINGLE_QUOTE,
    '"': Mode.DOUBLE_QUOTE,
}

_CONSTRUCT_NAMES = {
    Mode.BLOCK_COMMENT: 'block comment',
    Mode.SINGLE_QUOTE: 'single-quoted string',
    Mode.DOUBLE_QUOTE: 'double-quoted identifier',
    Mode.DOLLAR_QUOTE: 'dollar-quoted string',
}


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in '_$'


def _delimiter_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf'[ \t]*{keyword}[ \t]+(\S+)[ \t]*(?:\r?\n|$)', re.IGNORECASE)


def line_number(text: str, offset: int) -> int:
    """Return the 1-based line number of an offset in text."""
    return text.count('\n', 0, offset) + 1


# =============================================================================
# Scanner
# =============================================================================

class Scanner:
    """Single-pass lexical scanner over a SQL text.

    Iterating the scanner yields `Event` objects in source order. The state
    is only meaningful during iteration and a scanner is not reusable; create
    a new one (or call `scan()`) for each pass.

    Raises `UnbalancedConstructError` at end of input when a quote, block
    comment or dollar-quoted string is still open, or, with `strict` set,
    when a BEGIN/END block is still open.
    """

    def __init__(self, text: str, options: SplitterOptions | None = None) -> None:
        self.text = text
        self.options = options or DEFAULT_SPLITTER_OPTIONS
        self.state = ScannerState(terminator=self.options.terminator)
        self._delimiter = None
        if self.options.delimiter_keyword:
            self._delimiter = _delimiter_pattern(re.escape(self.options.delimiter_keyword))

    def __iter__(self) -> Iterator[Event]:
        text = self.text
        n = len(text)
        state = self.state
        pos = 0

        while pos < n:
            mode = state.mode
            if mode is Mode.CODE:
                pos = yield from self._scan_code(pos)
            elif mode is Mode.LINE_COMMENT:
                end = text.find('\n', pos)
                if end == -1:
                    end = n
                yield Event(EventType.EXIT_COMMENT, end, end, '--', state.block_depth)
                state.mode = Mode.CODE
                pos = end
            elif mode is Mode.BLOCK_COMMENT:
                pos = yield from self._scan_block_comment(pos)
            elif mode is Mode.DOLLAR_QUOTE:
                end = text.find(state.quote, pos)
                if end == -1:
                    pos = n
                    continue
                pos = end + len(state.quote)
                yield Event(EventType.EXIT_STRING, end, pos, state.quote, state.block_depth)
                state.mode = Mode.CODE
            else:
                pos = yield from self._scan_quoted(pos)

        self._finish()

    def _finish(self) -> None:
        state = self.state
        if state.mode is Mode.LINE_COMMENT:
            state.mode = Mode.CODE
        if state.mode is not Mode.CODE:
            construct = _CONSTRUCT_NAMES[state.mode]
            raise UnbalancedConstructError(construct, state.opened_at,
                                           line_number(self.text, state.opened_at))
        if state.blocks:
            if self.options.strict:
                opened_at = state.blocks[0]
                raise UnbalancedConstructError('BEGIN ... END block', opened_at,
                                               line_number(self.text, opened_at))
            logger.debug(f'Input ends inside {state.block_depth} open block(s)')

    def _at_line_start(self, pos: int) -> bool:
        return pos == 0 or self.text[pos - 1] == '\n'

    def _scan_code(self, pos: int):
        """Advance through code, returning the offset where the mode changed."""
        text = self.text
        n = len(text)
        state = self.state
        options = self.options

        while pos < n:
            if self._at_line_start(pos) and not state.blocks:
                if self._delimiter is not None:
                    m = self._delimiter.match(text, pos)
                    if m:
                        state.terminator = m.group(1)
                        logger.debug(f'Terminator changed to {state.terminator!r} at line {line_number(text, pos)}')
                        yield Event(EventType.DELIMITER_CHANGE, pos, m.end(), state.terminator, 0)
                        pos = m.end()
                        continue
            if options.slash_terminates and self._at_line_start(pos):
                m = _SLASH_LINE.match(text, pos)
                if m:
                    state.blocks.clear()
                    slash = text.index('/', pos)
                    yield Event(EventType.TERMINATOR, slash, slash + 1, '/', 0)
                    pos = m.end()
                    continue

            ch = text[pos]

            if not state.blocks and text.startswith(state.terminator, pos):
                end = pos + len(state.terminator)
                yield Event(EventType.TERMINATOR, pos, end, state.terminator, 0)
                pos = end
                continue

            if ch == '-' and options.line_comments and text.startswith('--', pos):
                state.mode = Mode.LINE_COMMENT
                state.opened_at = pos
                yield Event(EventType.ENTER_COMMENT, pos, pos + 2, '--', state.block_depth)
                return pos + 2

            if ch == '/' and options.block_comments and text.startswith('/*', pos):
                state.mode = Mode.BLOCK_COMMENT
                state.opened_at = pos
                state.comment_depth = 1
                yield Event(EventType.ENTER_COMMENT, pos, pos + 2, '/*', state.block_depth)
                return pos + 2

            if ch in _QUOTE_MODES:
                state.mode = _QUOTE_MODES[ch]
                state.quote = ch
                state.opened_at = pos
                yield Event(EventType.ENTER_STRING, pos, pos + 1, ch, state.block_depth)
                return pos + 1

            prev = text[pos - 1] if pos else ''

            if ch == '$' and options.dollar_quotes and not _is_ident_char(prev):
                m = _DOLLAR_TAG.match(text, pos)
                if m:
                    state.mode = Mode.DOLLAR_QUOTE
                    state.quote = m.group(0)
                    state.opened_at = pos
                    yield Event(EventType.ENTER_STRING, pos, m.end(), state.quote, state.block_depth)
                    return m.end()

            if ch.isascii() and (ch.isalpha() or ch == '_') and not _is_ident_char(prev):
                m = _WORD.match(text, pos)
                pos = m.end()
                if options.begin_end and prev != '.':
                    pos = yield from self._keyword(m.group(0).upper(), m.start(), pos)
                continue

            pos += 1

        return pos

    def _keyword(self, word: str, start: int, pos: int):
        """Track block nesting for BEGIN, CASE and END keywords."""
        state = self.state
        if word in {'BEGIN', 'END'} and self._is_column(word, start, pos):
            return pos
        if word == 'BEGIN':
            if self._begins_transaction(pos):
                return pos
            state.blocks.append(start)
            yield Event(EventType.BEGIN_BLOCK, start, pos, 'BEGIN', state.block_depth)
        elif word == 'CASE':
            state.blocks.append(start)
            yield Event(EventType.BEGIN_BLOCK, start, pos, 'CASE', state.block_depth)
        elif word == 'END':
            closes = True
            m = _NEXT_WORD.match(self.text, pos)
            if m and m.group(1).upper() in _END_SUFFIXES:
                closes = m.group(1).upper() == 'CASE'
                pos = m.end()
            if closes and state.blocks:
                state.blocks.pop()
                yield Event(EventType.END_BLOCK, start, pos, 'END', state.block_depth)
        return pos

    def _is_column(self, word: str, start: int, pos: int) -> bool:
        if self._previous_token(start) in _COLUMN_PRECEDERS:
            return True
        if word == 'BEGIN':
            m = _NEXT_TOKEN.match(self.text, pos)
            return bool(m) and m.group(1).upper() in _COLUMN_FOLLOWERS
        return False

    def _previous_token(self, start: int) -> str:
        """Word or single character before start, uppercased."""
        text = self.text
        end = start
        while end and text[end - 1].isspace():
            end -= 1
        begin = end
        while begin and _is_ident_char(text[begin - 1]):
            begin -= 1
        if begin == end:
            return text[end - 1] if end else ''
        return text[begin:end].upper()

    def _begins_transaction(self, pos: int) -> bool:
        text = self.text
        rest = pos
        while rest < len(text) and text[rest].isspace():
            rest += 1
        if rest == len(text) or text.startswith(self.state.terminator, rest):
            return True
        m = _NEXT_WORD.match(text, pos)
        return bool(m) and m.group(1).upper() in _TRANSACTION_WORDS

    def _scan_block_comment(self, pos: int):
        text = self.text
        state = self.state
        nested = self.options.nested_block_comments
        while True:
            close = text.find('*/', pos)
            if close == -1:
                return len(text)
            opener = text.find('/*', pos, close) if nested else -1
            if opener != -1:
                state.comment_depth += 1
                pos = opener + 2
                continue
            state.comment_depth -= 1
            pos = close + 2
            if state.comment_depth == 0:
                state.mode = Mode.CODE
                yield Event(EventType.EXIT_COMMENT, close, pos, '*/', state.block_depth)
                return pos

    def _scan_quoted(self, pos: int):
        text = self.text
        state = self.state
        quote = state.quote
        while True:
            end = text.find(quote, pos)
            if end == -1:
                return len(text)
            if text.startswith(quote, end + 1):
                pos = end + 2
                continue
            state.mode = Mode.CODE
            yield Event(EventType.EXIT_STRING, end, end + 1, quote, state.block_depth)
            return end + 1


def scan(text: str, options: SplitterOptions | None = None) -> Iterator[Event]:
    """Lazily scan text into lexical events.
    """
    return iter(Scanner(text, options))
