from dataclasses import dataclass

from sqlqueue.connection import TerminatePolicy
from sqlqueue.strategy import get_available_dialects, get_strategy_class
from sqlqueue.strategy import is_supported_dialect

from libb import ConfigOptions, scriptname

__all__ = [
    'ConnectionOptions',
]


@dataclass
class ConnectionOptions(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    Worker pool options:
    - message_type: Type value stamped on completion messages (default: 0)
    - max_threads: Number of worker threads (default: 1)
    - terminate_policy: `drain` or `drop` queued items at terminate (default: drain)

    Retry options for transient connection errors:
    - max_retries: Attempts per statement (default: 3)
    - retry_delay: Initial delay in seconds (default: 1)
    - retry_backoff: Delay multiplier between attempts (default: 1.5)

    Engine pooling options:
    - pool_size: Pooled DBAPI connections, raised to max_threads if lower (default: 5)
    - pool_recycle: Seconds before a pooled connection is recycled (default: 300)
    - pool_timeout: Seconds to wait for a pooled connection (default: 30)
    """
    drivername: str = 'postgresql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    # Worker pool parameters
    message_type: int = 0
    max_threads: int = 1
    terminate_policy: TerminatePolicy | str = TerminatePolicy.DRAIN
    # Retry parameters
    max_retries: int = 3
    retry_delay: float = 1
    retry_backoff: float = 1.5
    # Engine pooling parameters
    pool_size: int = 5
    pool_recycle: int = 300
    pool_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        self.appname = self.appname or scriptname() or 'python_console'
        if self.max_threads < 1:
            raise ValueError(f'max_threads must be at least 1, got {self.max_threads}')
        if self.max_retries < 1:
            raise ValueError(f'max_retries must be at least 1, got {self.max_retries}')
        self.terminate_policy = TerminatePolicy(self.terminate_policy)
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
