"""
Worker pool that executes queued statements.

A Connection owns a FIFO queue of Query work items and a fixed number of
worker threads draining it. Each worker pops an item, runs the statement
synchronously and reports completion through the item's callback with a
Message. A failing item only affects its own Message.

Three points of synchronization are kept apart:
1. The queue and its condition (workers wait here for work)
2. The live worker counter and its condition (start/terminate wait here)
3. The terminate flag and its lock
"""
import enum
import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self

from sqlqueue.container import ResultContainerBase
from sqlqueue.data import DataSet
from sqlqueue.exceptions import PoolError
from sqlqueue.message import Message
from sqlqueue.query import Output, Query

if TYPE_CHECKING:
    from sqlqueue.statement import Statement

__all__ = [
    'Connection',
    'TerminatePolicy',
]

logger = logging.getLogger(__name__)


class TerminatePolicy(enum.Enum):
    """What terminate() does with items nobody has dequeued yet.

    DRAIN: workers finish every queued item before exiting.
    DROP: queued items are removed and handed back by terminate() without
    their callbacks being called.
    """
    DRAIN = 'drain'
    DROP = 'drop'


class Connection:
    """Thread pool handling queued asynchronous statements.

    Examples
        cn = Connection(message_type=7, max_threads=2)
        cn.start()
        statement.queue(params, results, callback=on_done)
        cn.terminate()
    """

    def __init__(self, message_type: int = 0, max_threads: int = 1,
                 terminate_policy: TerminatePolicy | str = TerminatePolicy.DRAIN,
                 thread_factory: Callable[..., threading.Thread] = threading.Thread) -> None:
        """Initialize an idle pool.

        Args:
            message_type: Type value stamped on every completion Message
            max_threads: Number of worker threads to run
            terminate_policy: Handling of queued items at terminate()
            thread_factory: Callable building worker threads (threading.Thread signature)
        """
        if max_threads < 1:
            raise ValueError(f'max_threads must be at least 1, got {max_threads}')
        self.message_type = message_type
        self.max_threads = max_threads
        self.terminate_policy = TerminatePolicy(terminate_policy)
        self._thread_factory = thread_factory

        self._queries: deque[Query] = deque()
        self._wake_up = threading.Condition()

        self._threads = 0
        self._starting = 0
        self._worker_idents: set[int] = set()
        self._threads_changed = threading.Condition()

        self._terminate = False
        self._terminate_lock = threading.Lock()

        self._stats_lock = threading.Lock()
        self.calls = 0
        self.time = 0.0

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.terminate()

    @property
    def threads(self) -> int:
        """Number of live worker threads."""
        with self._threads_changed:
            return self._threads

    @property
    def pending(self) -> int:
        """Number of queued items not yet claimed by a worker."""
        with self._wake_up:
            return len(self._queries)

    @property
    def running(self) -> bool:
        return self.threads == self.max_threads

    def _terminating(self) -> bool:
        with self._terminate_lock:
            return self._terminate

    def start(self) -> None:
        """Bring the pool up to max_threads workers.

        Blocks until every spawned worker has reported ready. Workers already
        spawned by a concurrent start() count toward max_threads, so calling
        start() on a full or filling pool spawns nothing.

        Raises
            PoolError: If a worker thread cannot be created
        """
        with self._terminate_lock:
            self._terminate = False

        with self._threads_changed:
            spawned = 0
            try:
                while self._threads + self._starting < self.max_threads:
                    index = self._threads + self._starting
                    try:
                        thread = self._thread_factory(
                            target=self._worker, name=f'sqlqueue-worker-{id(self):x}-{index}',
                            daemon=True)
                        thread.start()
                    except Exception as err:
                        logger.error(f'Could not start worker thread ({index}/{self.max_threads} spawned): {err}')
                        raise PoolError(f'Could not start worker thread: {err}') from err
                    self._starting += 1
                    spawned += 1
            finally:
                while self._starting:
                    self._threads_changed.wait()

        if spawned:
            logger.debug(f'Started {spawned} worker thread(s), {self.max_threads} running')

    def terminate(self) -> list[Query]:
        """Stop every worker thread.

        Statements already running finish normally. Blocks until all workers
        have exited.

        Returns
            Items removed from the queue under TerminatePolicy.DROP, in queue order
        """
        with self._threads_changed:
            if threading.get_ident() in self._worker_idents:
                raise RuntimeError('terminate() cannot be called from a worker thread')

        with self._terminate_lock:
            self._terminate = True

        dropped: list[Query] = []
        with self._wake_up:
            if self.terminate_policy is TerminatePolicy.DROP:
                dropped = list(self._queries)
                self._queries.clear()
            self._wake_up.notify_all()

        if dropped:
            logger.warning(f'Dropped {len(dropped)} queued statement(s) without completion')

        with self._threads_changed:
            while self._threads:
                self._threads_changed.wait()

        logger.debug(f'Terminated worker pool: {self.calls} statements in {self.time:.2f}s')
        return dropped

    def queue(self, statement: 'Statement', parameters: DataSet | None = None,
              results: ResultContainerBase | None = None,
              insert_id: Output | None = None, rows: Output | None = None,
              callback: Callable[[Message], Any] | None = None) -> None:
        """Append a work item to the queue and wake one worker.
        """
        query = Query(statement, parameters, results, insert_id, rows, callback)
        with self._wake_up:
            self._queries.append(query)
            self._wake_up.notify()

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        with self._stats_lock:
            self.time += elapsed
            self.calls += 1

    def _next_query(self) -> Query | None:
        """Block until an item is available, or None when the worker must exit.

        The terminate flag is checked while holding the queue lock, so a
        terminate() broadcast cannot slip in between the check and the wait.
        """
        with self._wake_up:
            while True:
                if self._terminating() and (
                        self.terminate_policy is TerminatePolicy.DROP or not self._queries):
                    return None
                if self._queries:
                    return self._queries.popleft()
                self._wake_up.wait()

    def _process(self, query: Query) -> None:
        message = Message(self.message_type, query=query)
        try:
            query.run()
        except Exception as err:
            logger.debug(f'Queued statement failed: {err}')
            message = Message.failure(self.message_type, err, query)

        if query.callback is None:
            return
        try:
            query.callback(message)
        except Exception as err:
            logger.warning(f'Completion callback raised {type(err).__name__}: {err}')

    def _worker(self) -> None:
        ident = threading.get_ident()
        with self._threads_changed:
            self._starting -= 1
            self._threads += 1
            self._worker_idents.add(ident)
            self._threads_changed.notify_all()

        try:
            while True:
                query = self._next_query()
                if query is None:
                    break
                self._process(query)
        finally:
            with self._threads_changed:
                self._threads -= 1
                self._worker_idents.discard(ident)
                self._threads_changed.notify_all()
