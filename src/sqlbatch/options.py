from dataclasses import dataclass

from libb import ConfigOptions, scriptname

__all__ = [
    'SplitterOptions',
    'ConnectionOptions',
    'DEFAULT_SPLITTER_OPTIONS',
]


@dataclass
class SplitterOptions(ConfigOptions):
    """Options

    Lexical recognizers (all enabled by default):
    - line_comments: `--` through end of line
    - block_comments: `/* ... */`, nestable when nested_block_comments is set
    - dollar_quotes: `$tag$ ... $tag$`
    - begin_end: track BEGIN/CASE ... END nesting, terminators only split at depth 0

    Terminator handling:
    - terminator: statement terminator in effect at the start of the text
    - delimiter_keyword: keyword of the line directive that reassigns the
      terminator (`DELIMITER //`), None to disable the directive
    - slash_terminates: a line holding only `/` ends the statement
    - strict: an unterminated BEGIN/END block at end of input is an error,
      otherwise it is returned as the final statement

    Output shaping:
    - keep_terminators: append the terminator to each statement
    - keep_comments: leave comments inside statement text
    - keep_empty_statements: return empty and comment-only statements
    """
    terminator: str = ';'
    line_comments: bool = True
    block_comments: bool = True
    nested_block_comments: bool = True
    dollar_quotes: bool = True
    begin_end: bool = True
    delimiter_keyword: str | None = 'DELIMITER'
    slash_terminates: bool = False
    strict: bool = True
    keep_terminators: bool = False
    keep_comments: bool = True
    keep_empty_statements: bool = False

    def __post_init__(self):
        if not self.terminator or any(c.isspace() for c in self.terminator):
            raise ValueError(f'terminator must be a non-empty token without whitespace: {self.terminator!r}')
        if self.delimiter_keyword is not None:
            if not self.delimiter_keyword.isidentifier():
                raise ValueError(f'delimiter_keyword must be a bare word: {self.delimiter_keyword!r}')
            self.delimiter_keyword = self.delimiter_keyword.upper()


DEFAULT_SPLITTER_OPTIONS = SplitterOptions()


@dataclass
class ConnectionOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None

    def __post_init__(self):
        from sqlbatch.strategy import strategy_class
        cls = strategy_class(self.drivername)
        self.appname = self.appname or scriptname() or 'python_console'
        cls.validate_options(self)
