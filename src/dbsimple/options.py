from dataclasses import dataclass

from dbsimple.strategy import get_available_dialects, get_strategy_class
from dbsimple.strategy import is_supported_dialect

from libb import ConfigOptions, scriptname

__all__ = ['DatabaseOptions']


@dataclass
class DatabaseOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    Statement options:
    - autocommit: Put the driver connection in auto-commit mode (default: True)
    - strict_binding: Only accept str, int, float, bool, date/datetime and
      Decimal query arguments (default: False)
    - prepare_statements: Cache prepared statements per connection and ask
      the server to prepare them where supported (default: True)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    autocommit: bool = True
    strict_binding: bool = False
    prepare_statements: bool = True

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
