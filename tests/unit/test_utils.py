"""
Unit tests for dialect detection, strategies and engine creation.
"""
import sqlite3

import pytest
from dbsimple.connection import create_url_from_options, dispose_all_engines
from dbsimple.connection import get_engine_for_options
from dbsimple.options import DatabaseOptions
from dbsimple.strategy import PostgresStrategy, SQLiteStrategy
from dbsimple.strategy import get_available_dialects, get_strategy
from dbsimple.utils import get_dialect_name, get_raw_connection
from sqlalchemy.pool import NullPool


def test_dialect_from_driver_module(create_simple_mock_connection):
    """Test raw connections are detected by their driver module"""
    assert get_dialect_name(create_simple_mock_connection('postgresql')) == 'postgresql'
    assert get_dialect_name(create_simple_mock_connection('sqlite')) == 'sqlite'


def test_dialect_unknown(create_simple_mock_connection):
    with pytest.raises(AttributeError, match='Cannot determine dialect'):
        get_dialect_name(create_simple_mock_connection('unknown'))


def test_dialect_from_sqlalchemy_object(mocker):
    engine = mocker.MagicMock()
    engine.dialect.name = 'SQLite'
    assert get_dialect_name(engine) == 'sqlite'


def test_dialect_from_string_attribute(mocker):
    wrapper = mocker.MagicMock()
    wrapper.dialect = 'postgresql'
    assert get_dialect_name(wrapper) == 'postgresql'


def test_dialect_of_real_sqlite_connection():
    conn = sqlite3.connect(':memory:')
    try:
        assert get_dialect_name(conn) == 'sqlite'
        assert isinstance(get_strategy(get_dialect_name(conn)), SQLiteStrategy)
    finally:
        conn.close()


def test_get_raw_connection(mocker):
    proxy = mocker.MagicMock()
    assert get_raw_connection(proxy) is proxy.driver_connection
    raw = object()
    assert get_raw_connection(raw) is raw


def test_strategy_registry():
    assert set(get_available_dialects()) == {'postgresql', 'sqlite'}
    assert isinstance(get_strategy('postgresql'), PostgresStrategy)
    assert get_strategy('sqlite') is get_strategy('sqlite')
    with pytest.raises(ValueError, match='Unsupported dialect'):
        get_strategy('oracle')


def test_standardize_sql_per_dialect():
    assert get_strategy('sqlite').standardize_sql('select %s') == 'select ?'
    assert get_strategy('postgresql').standardize_sql("select ? where a like 'x%'") == \
        "select %s where a like 'x%%'"


def test_postgres_execute_passes_prepare(mocker):
    cursor = mocker.MagicMock()
    get_strategy('postgresql').execute(cursor, 'select %s', (1,), prepare=True)
    cursor.execute.assert_called_once_with('select %s', (1,), prepare=True)


def test_sqlite_execute_ignores_prepare(mocker):
    cursor = mocker.MagicMock()
    get_strategy('sqlite').execute(cursor, 'select ?', (1,), prepare=True)
    cursor.execute.assert_called_once_with('select ?', (1,))


def test_autocommit_toggles(mocker):
    raw = mocker.MagicMock()
    get_strategy('sqlite').configure_connection(raw, autocommit=True)
    assert raw.isolation_level is None
    get_strategy('sqlite').configure_connection(raw, autocommit=False)
    assert raw.isolation_level == 'DEFERRED'

    pg = mocker.MagicMock(spec=['autocommit'])
    get_strategy('postgresql').configure_connection(pg, autocommit=False)
    assert pg.autocommit is False


class TestUrls:

    def test_sqlite_url(self):
        options = DatabaseOptions(drivername='sqlite', database=':memory:')
        url = create_url_from_options(options)
        assert url.drivername == 'sqlite'
        assert url.database == ':memory:'

    def test_postgres_url(self):
        options = DatabaseOptions(drivername='postgresql', hostname='localhost',
                                  username='postgres', password='p@ss:word',
                                  database='test_db', port=5432, timeout=30,
                                  appname='tests')
        url = create_url_from_options(options)
        assert url.drivername == 'postgresql+psycopg'
        assert url.password == 'p@ss:word'
        assert url.host == 'localhost'
        assert url.port == 5432
        assert url.query == {'connect_timeout': '30', 'application_name': 'tests'}


class TestEngines:

    def teardown_method(self):
        dispose_all_engines()

    def test_engine_uses_null_pool_and_sqlite_types(self, mocker):
        factory = mocker.MagicMock()
        options = DatabaseOptions(drivername='sqlite', database='engine_test.db')
        get_engine_for_options(options, engine_factory=factory)

        _, kwargs = factory.call_args
        assert kwargs['poolclass'] is NullPool
        assert kwargs['connect_args']['detect_types'] == \
            sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES

    def test_engine_reused_for_same_options(self, mocker):
        factory = mocker.MagicMock()
        options = DatabaseOptions(drivername='sqlite', database='engine_reuse.db')
        first = get_engine_for_options(options, engine_factory=factory)
        second = get_engine_for_options(options, engine_factory=factory)
        assert first is second
        assert factory.call_count == 1
