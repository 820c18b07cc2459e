import pathlib
import site

import pytest
from dbsimple.setters import SetterCache

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear the shared setter cache before and after each test to ensure test isolation."""
    SetterCache.get_instance().clear()
    yield
    SetterCache.get_instance().clear()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.entities',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
