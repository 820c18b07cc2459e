import logging
import pathlib
import sys

import dbsimple as db
import pytest
from testcontainers.postgres import PostgresContainer

from libb import Setting

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
sys.path.insert(0, str(HERE.parent))
import config

logger = logging.getLogger(__name__)

USERS_TABLE = """
create table users (
    id integer primary key,
    username varchar(50) not null,
    password varchar(50) not null,
    active boolean not null,
    last_active timestamp,
    balance numeric(10, 2),
    login_count bigint,
    tags text[]
)
"""

USERS_DATA = """
insert into users (id, username, password, active, last_active, balance, login_count, tags) values
(1, 'admin', 'password', true, '1970-01-01 00:00:00', 1345.23, 5000000000, '{root,ops}'),
(2, 'bob.wiley', 'password2', true, '1973-02-02 00:00:00', 564.77, 3, '{}')
"""


@pytest.fixture(scope='session')
def psql_docker(request):
    """Session-scoped PostgreSQL container using testcontainers.

    The container gets a random port, which is written back into the
    postgresql config section.
    """
    container = PostgresContainer(
        image='postgres:16',
        username=config.postgresql.username,
        password=config.postgresql.password,
        dbname=config.postgresql.database,
    )

    try:
        container.start()
    except Exception as e:
        logger.error(f'Error starting postgres container: {e}')
        raise

    Setting.unlock()
    config.postgresql.hostname = container.get_container_host_ip()
    config.postgresql.port = int(container.get_exposed_port(5432))
    Setting.lock()

    logger.info(
        f'PostgreSQL container started at '
        f'{config.postgresql.hostname}:{config.postgresql.port}'
    )

    def finalizer():
        try:
            container.stop()
            logger.info('PostgreSQL container stopped')
        except Exception as e:
            logger.warning(f'Error stopping container: {e}')

    request.addfinalizer(finalizer)
    return container


def stage_test_data(cn):
    db.execute(cn, 'drop table if exists users')
    db.execute(cn, USERS_TABLE)
    db.execute(cn, USERS_DATA)


@pytest.fixture
def pg_conn(psql_docker):
    """Connection with a freshly staged users table."""
    cn = db.connect('postgresql', config=config)
    stage_test_data(cn)
    yield cn
    cn.close()
