"""
Bounded external calls: a timeout per attempt and a fixed number of retries.
"""
import contextvars
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout

from ledgerflow.common.logging_config import get_logger

logger = get_logger(__name__)


class CallFailed(Exception):
    """Every attempt timed out or raised."""

    def __init__(self, label: str, last_error: Exception):
        self.label = label
        self.last_error = last_error
        super().__init__(f"{label} failed: {type(last_error).__name__}: {last_error}")


def call_with_timeout(fn, *args, timeout: float = 30.0, retries: int = 1, passthrough=(), label: str = None):
    """
    Run fn(*args) in a worker thread, at most `retries + 1` times.

    Args:
        fn: Callable to run
        timeout: Seconds allowed per attempt
        retries: Extra attempts after the first failure
        passthrough: Exception types re-raised immediately, without retry
        label: Name used in logs

    Raises:
        CallFailed: when every attempt timed out or raised
    """
    label = label or getattr(fn, '__name__', type(fn).__name__)
    last_error = None
    for attempt in range(1, retries + 2):
        executor = ThreadPoolExecutor(max_workers=1)
        # Workers log under the caller's request and document
        future = executor.submit(contextvars.copy_context().run, fn, *args)
        try:
            return future.result(timeout=timeout)
        except passthrough:
            raise
        except FuturesTimeout as e:
            last_error = e
            logger.warning("External call timed out", call=label, attempt=attempt, timeout=timeout)
        except Exception as e:
            last_error = e
            logger.warning(f"External call failed: {e}", call=label, attempt=attempt, error_type=type(e).__name__)
        finally:
            # A timed-out worker is abandoned, not joined
            executor.shutdown(wait=False, cancel_futures=True)
    raise CallFailed(label, last_error)
