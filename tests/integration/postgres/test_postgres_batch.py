"""
End-to-end batches on a PostgreSQL container.
"""
import psycopg
import pytest
from sqlbatch import MultiStatement, execute_batch
from sqlbatch.exceptions import StatementExecutionFailure, ValidationError
from sqlbatch.executor import BatchState

pytestmark = pytest.mark.postgres


def table_exists(cn, table='t'):
    return cn.raw_connection.execute('SELECT to_regclass(%s)', (table,)).fetchone()[0] is not None


def rows(cn, sql):
    return cn.raw_connection.execute(sql).fetchall()


class TestRollback:

    def test_failure_rolls_back_ddl_and_rows(self, pg_conn):
        result = execute_batch(pg_conn, 'CREATE TABLE t(a integer); '
                                        'INSERT INTO t VALUES (1); '
                                        "INSERT INTO t VALUES ('x'); "
                                        'INSERT INTO t VALUES (3)')
        assert not result
        assert result.state is BatchState.ROLLED_BACK
        assert result.failure.index == 2
        assert result.failure.error_info.sqlstate == '22P02'
        assert not table_exists(pg_conn)
        assert pg_conn.autocommit is True

    def test_success_commits(self, pg_conn):
        result = execute_batch(pg_conn, 'CREATE TABLE t(a integer); INSERT INTO t VALUES (1), (2)')
        assert result.success
        assert result.results[1] == 2
        assert rows(pg_conn, 'SELECT count(*) FROM t') == [(2,)]
        assert pg_conn.autocommit is True

    def test_raise_on_failure(self, pg_conn):
        with pytest.raises(StatementExecutionFailure) as exc_info:
            execute_batch(pg_conn, 'CREATE TABLE t(a integer); SELECT * FROM nowhere',
                          raise_on_failure=True)
        assert isinstance(exc_info.value.__cause__, psycopg.errors.UndefinedTable)
        assert not table_exists(pg_conn)


class TestNoRollback:

    def test_earlier_statements_persist(self, pg_conn):
        result = execute_batch(pg_conn, 'CREATE TABLE t(a integer); '
                                        'INSERT INTO t VALUES (1); '
                                        "INSERT INTO t VALUES ('x'); "
                                        'INSERT INTO t VALUES (3)', rollback=False)
        assert not result
        assert result.state is BatchState.STOPPED_ON_FAILURE
        assert len(result) == 2
        assert rows(pg_conn, 'SELECT a FROM t') == [(1,)]


class TestStatements:

    def test_dollar_quoted_function(self, pg_conn):
        sql = """
        CREATE TABLE t(a integer);
        CREATE OR REPLACE FUNCTION sqlbatch_one() RETURNS integer AS $body$
        BEGIN
            INSERT INTO t VALUES (1);
            RETURN 1;
        END;
        $body$ LANGUAGE plpgsql;
        SELECT sqlbatch_one();
        DROP FUNCTION sqlbatch_one();
        """
        result = execute_batch(pg_conn, sql)
        assert len(result) == 4
        assert rows(pg_conn, 'SELECT a FROM t') == [(1,)]

    def test_do_block(self, pg_conn):
        sql = ('CREATE TABLE t(a integer);\n'
               'DO $$ BEGIN INSERT INTO t VALUES (5); END $$;\n'
               "SELECT '50%'")
        assert execute_batch(pg_conn, sql).success
        assert rows(pg_conn, 'SELECT a FROM t') == [(5,)]

    def test_bind_values_across_placeholder_kinds(self, pg_conn):
        sql = ('CREATE TABLE t(a integer, b text);'
               'INSERT INTO t VALUES (?, ?);'
               'INSERT INTO t VALUES ($2, $1);'
               "INSERT INTO t VALUES (:a, :b || '%')")
        result = execute_batch(pg_conn, sql, bind_values=[1, 'x', 'y', 2, 3, 'z'])
        assert result.success
        assert rows(pg_conn, 'SELECT a, b FROM t ORDER BY a') == [(1, 'x'), (2, 'y'), (3, 'z%')]

    def test_execution_attributes(self, pg_conn):
        batch = MultiStatement(pg_conn)
        result = batch.do('CREATE TABLE t(a integer); INSERT INTO t VALUES (?)',
                          attributes={'prepare': False}, bind_values=[1])
        assert result.success

        with pytest.raises(ValidationError):
            batch.do('SELECT 1', attributes={'timeout': 1})
