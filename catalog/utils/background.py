# catalog/utils/background.py
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_default_executor(max_workers: int = 2) -> ThreadPoolExecutor:
    """Process-wide executor for fire-and-forget jobs, created on first use"""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="catalog-bg")
        return _executor


def spawn(executor: Executor, func: Callable[..., Any], *args: Any,
          name: Optional[str] = None, **kwargs: Any) -> Optional[Future]:
    """Run a job in the background without ever raising into the caller.

    Failures are logged when the job finishes. If the executor refuses the
    job (e.g. it was shut down) the job is dropped and logged.

    Args:
        executor: Executor to run the job on
        func: Callable to run
        name: Name used in log messages
    """
    label = name or getattr(func, "__name__", repr(func))
    try:
        future = executor.submit(func, *args, **kwargs)
    except RuntimeError:
        logger.exception("Could not schedule background job %s", label)
        return None

    def _finished(f: Future) -> None:
        if f.cancelled():
            logger.debug("Background job %s cancelled", label)
            return
        exc = f.exception()
        if exc is not None:
            logger.error("Background job %s failed", label, exc_info=exc)

    future.add_done_callback(_finished)
    return future
