import threading
import time
from collections.abc import Callable


class WaitExhaustedError(RuntimeError):
    pass


class WaitCancelledError(WaitExhaustedError):
    pass


def poll_until(
    check: Callable[[], bool],
    *,
    interval_seconds: float,
    max_wait_seconds: float | None = None,
    stop_event: threading.Event | None = None,
    on_miss: Callable[[int], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Call ``check`` until it returns true and return the number of attempts.

    ``max_wait_seconds=None`` waits indefinitely. Setting ``stop_event`` wakes
    the sleep immediately and raises ``WaitCancelledError``.
    """
    stop_event = stop_event or threading.Event()
    started = clock()
    attempt = 0

    while True:
        attempt += 1
        if check():
            return attempt
        if on_miss:
            on_miss(attempt)

        timeout = interval_seconds
        if max_wait_seconds is not None:
            remaining = max_wait_seconds - (clock() - started)
            if remaining <= 0:
                raise WaitExhaustedError(f"gave up after {attempt} attempt(s) and {max_wait_seconds}s")
            timeout = min(interval_seconds, remaining)

        if stop_event.wait(timeout):
            raise WaitCancelledError(f"wait cancelled after {attempt} attempt(s)")
