"""Single-thread worker for library database access.

Record-store reads, selection recomputation and collection.db operations all
run on one designated thread, in submission order.
"""

import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional, Tuple

from loguru import logger

_STOP = object()

WorkItem = Tuple[Future, Callable[..., Any], tuple, dict]


class DatabaseWorker:
    """Background thread that runs scheduled callables one at a time.

    Work scheduled from the worker thread itself runs inline so nested calls
    can't deadlock waiting on their own queue.
    """

    def __init__(self, name: str = "database-worker"):
        self.name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread if it isn't running."""
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            # Worker output goes to the log file only
            self._thread.silent_logging = True
            self._thread.start()
        logger.debug(f"{self.name} started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Finish queued work, then stop the thread."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._queue.put(_STOP)
            self._thread = None
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
        logger.debug(f"{self.name} stopped")

    def on_worker_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Queue a callable to run on the worker thread.

        Returns:
            Future resolving to the callable's result or exception
        """
        future: Future = Future()
        if self.on_worker_thread():
            _execute((future, fn, args, kwargs))
            return future
        if not self.running:
            self.start()
        self._queue.put((future, fn, args, kwargs))
        return future

    def run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a callable on the worker thread and wait for its result.

        Raises:
            Exception: Whatever the callable raised
        """
        return self.schedule(fn, *args, **kwargs).result()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                _execute(item)
            finally:
                self._queue.task_done()

    def __enter__(self) -> "DatabaseWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


def _execute(item: WorkItem) -> None:
    future, fn, args, kwargs = item
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn(*args, **kwargs)
    except BaseException as e:
        logger.debug(f"Worker task {getattr(fn, '__name__', fn)} raised {type(e).__name__}: {e}")
        future.set_exception(e)
    else:
        future.set_result(result)
