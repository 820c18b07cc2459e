"""
Entity mapping against a real SQLite database.
"""
import datetime
import decimal

import dbsimple as db
import pytest
from dbsimple.exceptions import SetterNotFoundError, TooManyRowsError


def test_fetch_entity_by_type(sqlite_conn, user_class):
    """Test a single row is mapped into a new entity through setter methods"""
    user = db.fetch_entity(sqlite_conn, user_class, 'select * from users where id = ?', 1)

    assert isinstance(user, user_class)
    assert user.id == 1
    assert user.username == 'admin'
    assert user.password == 'password'
    assert user.active is True
    assert user.last_active == datetime.datetime(1970, 1, 1)
    assert user.balance == decimal.Decimal('1345.23')


def test_fetch_entity_into_instance(sqlite_conn, user_class):
    user = user_class()
    result = db.fetch_entity(sqlite_conn, user, 'select username from users where id = ?', 2)
    assert result is user
    assert user.username == 'bob.wiley'
    assert user.password is None


def test_fetch_entity_no_rows(sqlite_conn, user_class):
    assert db.fetch_entity(sqlite_conn, user_class, 'select * from users where id = ?', 99) is None


def test_fetch_entity_too_many_rows(sqlite_conn, user_class):
    with pytest.raises(TooManyRowsError):
        db.fetch_entity(sqlite_conn, user_class, 'select * from users')


def test_fetch_entity_dataclass(sqlite_conn, user_record_class):
    record = db.fetch_entity(sqlite_conn, user_record_class,
                             'select id, username, last_active from users where id = ?', 2)
    assert record.id == 2
    assert record.username == 'bob.wiley'
    assert record.lastActive == datetime.datetime(1973, 2, 2)


def test_fetch_entity_properties(sqlite_conn, user_profile_class):
    profile = db.fetch_entity(sqlite_conn, user_profile_class,
                              'select username, balance from users where id = ?', 1)
    assert profile.username == 'ADMIN'
    assert profile.balance == decimal.Decimal('1345.23')


def test_fetch_entity_column_alias(sqlite_conn, user_class):
    """Test aliased snake_case columns reach camelCase setters"""
    user = db.fetch_entity(sqlite_conn, user_class,
                           'select last_active as "LAST_ACTIVE" from users where id = 1')
    assert user.last_active == datetime.datetime(1970, 1, 1)


def test_fetch_entity_unknown_column(sqlite_conn, user_class):
    with pytest.raises(SetterNotFoundError):
        db.fetch_entity(sqlite_conn, user_class,
                        'select username as nickname from users where id = 1')


def test_fetch_all_entity(sqlite_conn, user_class):
    users = db.fetch_all_entity(sqlite_conn, user_class, 'select * from users order by id')
    assert [u.username for u in users] == ['admin', 'bob.wiley']
    assert users[0] is not users[1]


def test_fetch_all_entity_no_rows(sqlite_conn, user_class):
    assert db.fetch_all_entity(sqlite_conn, user_class,
                               'select * from users where active = ?', False) == []


def test_fetch_all_entity_resolves_setters_once(sqlite_conn, user_class):
    cache = sqlite_conn.setter_cache
    db.fetch_all_entity(sqlite_conn, user_class, 'select * from users')
    resolutions = cache.resolutions
    db.fetch_all_entity(sqlite_conn, user_class, 'select * from users')
    assert cache.resolutions == resolutions


def test_fetch_all_entity_map(sqlite_conn, user_class):
    users = db.fetch_all_entity_map(sqlite_conn, user_class, 'username',
                                    'select * from users order by id')
    assert list(users) == ['admin', 'bob.wiley']
    assert users['admin'].id == 1


def test_fetch_all_entity_map_key_case_insensitive(sqlite_conn, user_class):
    users = db.fetch_all_entity_map(sqlite_conn, user_class, 'ID', 'select * from users')
    assert set(users) == {'1', '2'}


def test_fetch_all_entity_map_duplicate_keys(sqlite_conn, user_class):
    """Test later rows replace earlier ones with the same key"""
    users = db.fetch_all_entity_map(sqlite_conn, user_class, 'active',
                                    'select * from users order by id')
    assert list(users) == ['True']
    assert users['True'].username == 'bob.wiley'


def test_fetch_map(sqlite_conn):
    record = db.fetch_map(sqlite_conn, 'select ID, UserName from users where id = ?', 1)
    assert record == {'id': 1, 'username': 'admin'}
    assert record.username == 'admin'


def test_fetch_map_no_rows(sqlite_conn):
    assert db.fetch_map(sqlite_conn, 'select * from users where id = ?', 99) is None


def test_fetch_map_too_many_rows(sqlite_conn):
    with pytest.raises(TooManyRowsError):
        db.fetch_map(sqlite_conn, 'select * from users')


def test_fetch_all_map(sqlite_conn):
    records = db.fetch_all_map(sqlite_conn, 'select id, username from users order by id')
    assert records == [{'id': 1, 'username': 'admin'}, {'id': 2, 'username': 'bob.wiley'}]


def test_fetch_all_entity_null_then_typed_value(sqlite_conn):
    class Login:
        def setLastActive(self, value: str):
            self.last_active = value

    db.update(sqlite_conn, 'update users set last_active = null where id = ?', 1)
    with pytest.raises(SetterNotFoundError):
        db.fetch_all_entity(sqlite_conn, Login, 'select last_active from users order by id')
