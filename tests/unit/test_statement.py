"""
Statement cache and prepared statement behavior against a fake psycopg driver.
"""
import logging

import dbsimple as db
import pytest
from dbsimple.exceptions import DatabaseError, UnsupportedArgumentTypeError
from dbsimple.statement import PreparedStatement, StatementCache
from psycopg.postgres import types as pg_types

INT4 = pg_types.get('int4').oid
TEXT = pg_types.get('text').oid


@pytest.fixture
def fake_cn(fake_postgres_connection):
    conn = fake_postgres_connection(description=[('id', INT4), ('username', TEXT)],
                                    rows=[(1, 'admin')], rowcount=1)
    cn = db.wrap(conn)
    yield cn
    cn.close()


def test_prepare_caches_by_exact_sql(fake_cn):
    first = fake_cn.prepare('select * from users where id = ?')
    assert fake_cn.prepare('select * from users where id = ?') is first
    assert fake_cn.prepare('select * from users where id = ? ') is not first
    assert len(fake_cn.statements) == 2


def test_prepare_standardizes_placeholders(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ? and username = ?')
    assert statement.operation == 'select * from users where id = %s and username = %s'
    assert statement.parameter_count == 2
    assert statement.sql == 'select * from users where id = ? and username = ?'


def test_bind_position_out_of_range(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ?')
    with pytest.raises(ValueError, match='out of range'):
        statement.bind(2, 1)
    with pytest.raises(ValueError, match='out of range'):
        statement.bind_null(0)


def test_unbound_parameters_rejected(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ? and username = ?')
    statement.bind(1, 1)
    with pytest.raises(ValueError, match='No value bound'):
        statement.execute()


def test_bind_arguments_replaces_previous_values(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ?')
    fake_cn.bind_arguments(statement, 1)
    fake_cn.bind_arguments(statement, 2)
    assert statement.parameters == (2,)


def test_execute_opens_fresh_cursor_each_time(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ?')
    fake_cn.bind_arguments(statement, 1)
    first = statement.execute()
    second = statement.execute()
    assert first.dbapi_cursor is not second.dbapi_cursor
    first.close()
    second.close()


def test_postgres_statements_prepared_server_side(fake_cn):
    cursor = fake_cn.fetch('select * from users where id = ?', 1)
    cursor.close()
    operation, parameters, kwargs = fake_cn.dbapi_connection.executed[-1]
    assert operation == 'select * from users where id = %s'
    assert parameters == (1,)
    assert kwargs == {'prepare': True}


def test_prepare_statements_disabled(fake_postgres_connection):
    conn = fake_postgres_connection(description=[('id', INT4)], rows=[(1,)])
    cn = db.wrap(conn, prepare_statements=False)
    assert cn.prepare('select 1') is not cn.prepare('select 1')
    cn.fetch_long('select 1')
    assert conn.executed[-1][2] == {'prepare': None}
    cn.close()


def test_strict_binding_rejects_bytes(fake_postgres_connection):
    cn = db.wrap(fake_postgres_connection(), strict_binding=True)
    with pytest.raises(UnsupportedArgumentTypeError):
        cn.update('update users set password = ? where id = ?', b'raw', 1)
    cn.close()


def test_closed_statement_cannot_execute(fake_cn):
    statement = fake_cn.prepare('select 1')
    statement.close()
    assert statement.closed
    with pytest.raises(DatabaseError, match='closed'):
        statement.execute()


def test_closed_statement_replaced_in_cache(fake_cn):
    statement = fake_cn.prepare('select 1')
    statement.close()
    assert fake_cn.prepare('select 1') is not statement


def test_statement_cache_close(fake_cn):
    statements = [fake_cn.prepare(f'select {i}') for i in range(3)]
    fake_cn.statements.close()
    assert len(fake_cn.statements) == 0
    assert all(s.closed for s in statements)


def test_connection_close_closes_statements(fake_postgres_connection):
    conn = fake_postgres_connection()
    cn = db.wrap(conn)
    statement = cn.prepare('select 1')
    cn.close()
    assert statement.closed
    assert conn.closed
    with pytest.raises(DatabaseError, match='closed'):
        cn.prepare('select 1')


def test_connection_close_failure_logged(fake_postgres_connection, caplog):
    """Test close failures are logged and swallowed"""
    cn = db.wrap(fake_postgres_connection(fail_on_close=True))
    with caplog.at_level(logging.WARNING):
        cn.close()
    assert cn.closed
    assert 'Error closing connection' in caplog.text


def test_statement_cache_standalone():
    cache = StatementCache()
    assert len(cache) == 0
    assert 'select 1' not in cache
    assert list(cache) == []


def test_prepared_statement_repr(fake_cn):
    statement = fake_cn.prepare('select * from users where id = ?')
    assert isinstance(statement, PreparedStatement)
    assert repr(statement) == "PreparedStatement('select * from users where id = ?', parameters=1)"
