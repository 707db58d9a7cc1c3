"""
Test statement splitting.
"""
import pytest
from sqlbatch import split, split_with_placeholders
from sqlbatch.exceptions import MixedPlaceholderKindError, UnbalancedConstructError
from sqlbatch.options import DEFAULT_SPLITTER_OPTIONS, SplitterOptions
from sqlbatch.splitter import load_splitter_options, split_statements
from sqlbatch.types import PlaceholderKind


class TestSplit:
    """Basic splitting behaviour"""

    def test_three_statements_with_comment(self):
        sql = 'CREATE TABLE t(a); INSERT INTO t VALUES (1); /* c */ INSERT INTO t VALUES (2);'
        assert split(sql) == [
            'CREATE TABLE t(a)',
            'INSERT INTO t VALUES (1)',
            '/* c */ INSERT INTO t VALUES (2)',
        ]

    def test_last_statement_without_terminator(self):
        assert split('SELECT 1; SELECT 2') == ['SELECT 1', 'SELECT 2']

    def test_empty_statements_are_skipped(self):
        assert split(';;SELECT 1;;\n;  ') == ['SELECT 1']

    def test_empty_text(self):
        assert split('') == []
        assert split('   \n  ') == []

    def test_comment_only_statement_is_empty(self):
        assert split('SELECT 1; -- nothing here\n; /* or here */;') == ['SELECT 1']

    def test_keep_empty_statements(self):
        assert split('SELECT 1;; SELECT 2', keep_empty_statements=True) == [
            'SELECT 1', '', 'SELECT 2']

    def test_strings_and_identifiers_keep_terminators(self):
        sql = "INSERT INTO \"odd;name\" VALUES ('a;b', 'it''s; fine'); SELECT 2"
        assert split(sql) == [
            "INSERT INTO \"odd;name\" VALUES ('a;b', 'it''s; fine')",
            'SELECT 2',
        ]

    def test_nested_block_comments(self):
        assert split('/* a /* b */ ; */ SELECT 1;') == ['/* a /* b */ ; */ SELECT 1']

    def test_flat_block_comments(self):
        assert split('/* a /* b */ ; */ SELECT 1;', nested_block_comments=False) == [
            '*/ SELECT 1']

    def test_keep_terminators(self):
        assert split('SELECT 1; SELECT 2', keep_terminators=True) == ['SELECT 1;', 'SELECT 2']

    def test_strip_comments(self):
        sql = 'SELECT 1 -- one\n; SELECT /* two */ 2;'
        assert split(sql, keep_comments=False) == ['SELECT 1', 'SELECT   2']

    def test_options_object_and_overrides(self):
        options = SplitterOptions(terminator='GO')
        assert split('SELECT 1\nGO\nSELECT 2', options) == ['SELECT 1', 'SELECT 2']
        assert split('SELECT 1 @ SELECT 2', options, terminator='@') == ['SELECT 1', 'SELECT 2']

    def test_options_dict(self):
        assert split('SELECT 1 | SELECT 2', {'terminator': '|'}) == ['SELECT 1', 'SELECT 2']


SCRIPT = """
CREATE TABLE t(a, b);  -- two columns
INSERT INTO t VALUES ('a;b', "x;y");
CREATE TRIGGER tr AFTER INSERT ON t BEGIN
  UPDATE t SET b = CASE WHEN a = ';' THEN 1 END;
END;
/* ; */ SELECT $$ ; $$, 'it''s';;
SELECT 2
"""


class TestResplit:
    """Splitting output again gives the same statements"""

    def test_split_is_deterministic(self):
        assert split(SCRIPT) == split(SCRIPT)

    def test_joined_statements_split_the_same(self):
        statements = split(SCRIPT)
        assert len(statements) == 5
        assert split(';\n'.join(statements)) == statements

    def test_each_statement_is_atomic(self):
        for statement in split(SCRIPT):
            assert split(statement) == [statement]

    def test_kept_terminators_rejoin_to_normalized_text(self):
        sql = "SELECT 1;\n  INSERT INTO t VALUES ('a;b');\nSELECT 2;"
        statements = split(sql, keep_terminators=True)
        assert ' '.join(statements) == "SELECT 1; INSERT INTO t VALUES ('a;b'); SELECT 2;"
        assert split(' '.join(statements), keep_terminators=True) == statements


class TestBlocks:
    """BEGIN ... END and CASE ... END nesting"""

    def test_trigger_body(self):
        sql = ('CREATE TRIGGER tr AFTER INSERT ON t BEGIN\n'
               '  INSERT INTO log VALUES (new.a);\n'
               '  UPDATE c SET n = n + 1;\n'
               'END;\n'
               'SELECT 1;')
        statements = split(sql)
        assert len(statements) == 2
        assert statements[0].startswith('CREATE TRIGGER')
        assert statements[0].endswith('END')
        assert statements[1] == 'SELECT 1'

    def test_deeply_nested_blocks(self):
        sql = ('BEGIN\n BEGIN\n  BEGIN\n   SELECT 1;\n  END;\n END;\nEND;\n'
               'SELECT 2;')
        statements = split(sql)
        assert len(statements) == 2
        assert statements[0].count('END') == 3
        assert statements[1] == 'SELECT 2'

    def test_case_inside_block(self):
        sql = 'CREATE TRIGGER x BEGIN UPDATE t SET a = CASE WHEN b THEN 1 END; END; SELECT 1'
        assert split(sql) == [
            'CREATE TRIGGER x BEGIN UPDATE t SET a = CASE WHEN b THEN 1 END; END',
            'SELECT 1',
        ]

    def test_transaction_statements(self):
        assert split('BEGIN; INSERT INTO t VALUES (1); COMMIT;') == [
            'BEGIN', 'INSERT INTO t VALUES (1)', 'COMMIT']
        assert split('BEGIN TRANSACTION; SELECT 1; END;') == [
            'BEGIN TRANSACTION', 'SELECT 1', 'END']

    def test_begin_and_end_as_column_names(self):
        assert split('SELECT begin FROM t; SELECT 2;') == ['SELECT begin FROM t', 'SELECT 2']
        assert split('UPDATE t SET begin = 1; SELECT 2') == ['UPDATE t SET begin = 1', 'SELECT 2']
        sql = 'CREATE PROCEDURE p() BEGIN SELECT start, end FROM t; END; SELECT 2'
        assert split(sql) == [
            'CREATE PROCEDURE p() BEGIN SELECT start, end FROM t; END', 'SELECT 2']

    def test_dollar_quoted_function(self):
        sql = ('CREATE FUNCTION f() RETURNS int AS $$\n'
               'BEGIN\n  RETURN 1;\nEND;\n$$ LANGUAGE plpgsql;\n'
               'SELECT f();')
        statements = split(sql)
        assert len(statements) == 2
        assert statements[0].endswith('LANGUAGE plpgsql')
        assert statements[1] == 'SELECT f()'

    def test_unterminated_block_strict(self):
        with pytest.raises(UnbalancedConstructError):
            split('CREATE TRIGGER t BEGIN SELECT 1;')

    def test_unterminated_block_lenient(self):
        assert split('SELECT 0; CREATE TRIGGER t BEGIN SELECT 1;', strict=False) == [
            'SELECT 0', 'CREATE TRIGGER t BEGIN SELECT 1;']


class TestDelimiter:
    """DELIMITER directives"""

    def test_procedure_with_custom_delimiter(self):
        sql = ('DELIMITER //\n'
               'CREATE PROCEDURE p()\nBEGIN\n  SELECT 1;\nEND//\n'
               'DELIMITER ;\n'
               'SELECT 2;')
        statements = split_statements(sql)
        assert [s.text for s in statements] == [
            'CREATE PROCEDURE p()\nBEGIN\n  SELECT 1;\nEND',
            'SELECT 2',
        ]
        assert statements[0].terminator == '//'
        assert statements[1].terminator == ';'

    def test_directive_closes_pending_statement(self):
        statements = split_statements('SELECT 1\nDELIMITER //\nSELECT 2//')
        assert [s.text for s in statements] == ['SELECT 1', 'SELECT 2']
        assert statements[0].terminator is None

    def test_unterminated_final_statement(self):
        statements = split_statements('SELECT 1; SELECT 2')
        assert statements[0].terminator == ';'
        assert statements[1].terminator is None


class TestSplitWithPlaceholders:

    def test_counts_and_kinds(self):
        sql = 'INSERT INTO t VALUES (?, ?); SELECT 1; UPDATE t SET a = :v WHERE b = :v; SELECT $2'
        statements = split_with_placeholders(sql)
        assert [s.placeholder_count for s in statements] == [2, 0, 1, 2]
        assert [s.placeholder_kind for s in statements] == [
            PlaceholderKind.POSITIONAL, PlaceholderKind.NONE,
            PlaceholderKind.NAMED, PlaceholderKind.NUMBERED]
        assert statements[2].placeholder_names == ('v',)

    def test_placeholders_in_strings_and_comments(self):
        sql = "SELECT '?', \"?\" -- ?\n, ? /* :x */; SELECT $$ $1 $$"
        statements = split_with_placeholders(sql)
        assert [s.placeholder_count for s in statements] == [1, 0]

    def test_mixed_kinds(self):
        with pytest.raises(MixedPlaceholderKindError) as exc_info:
            split_with_placeholders('SELECT 1; SELECT ?, :a')
        assert exc_info.value.kinds == {PlaceholderKind.POSITIONAL, PlaceholderKind.NAMED}


class TestLoadSplitterOptions:

    def test_default(self):
        assert load_splitter_options() is DEFAULT_SPLITTER_OPTIONS

    def test_keywords(self):
        options = load_splitter_options(terminator='$$')
        assert options.terminator == '$$'
        assert options.line_comments is True

    def test_replace_fields(self):
        base = SplitterOptions(strict=False)
        options = load_splitter_options(base, keep_terminators=True)
        assert options.strict is False
        assert options.keep_terminators is True
        assert base.keep_terminators is False

    def test_from_dict(self):
        options = load_splitter_options({'terminator': '//', 'begin_end': False})
        assert isinstance(options, SplitterOptions)
        assert options.terminator == '//'
        assert options.begin_end is False

    def test_from_config(self):
        import config
        options = load_splitter_options('splitter', config=config)
        assert options.terminator == '//'
        assert options.strict is False
        assert split('SELECT 1 // BEGIN SELECT 2', options) == ['SELECT 1', 'BEGIN SELECT 2']
