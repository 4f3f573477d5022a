# SPDX-License-Identifier: AGPL-3.0-only

"""
Polling for asynchronous remote jobs.

A job moves ``submitted -> processing -> completed | failed``. The caller
supplies a function returning the current ``JobState``; ``wait_for_completion``
re-checks it on a fixed interval until a terminal state, a bound, or a
cancellation is reached.
"""

import logging
import threading
import time
from typing import Callable, Optional

from .exceptions import JobCancelledError, JobFailedError, JobTimeoutError
from .models import JobState, JobStatus

logger = logging.getLogger(__name__)


def wait_for_completion(
    fetch_state: Callable[[], JobState],
    interval: float = 1.0,
    max_attempts: int = 300,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> JobState:
    """
    Poll ``fetch_state`` until the job completes.

    Args:
        fetch_state: Returns the job's current state; called once per attempt
        interval: Seconds to wait between attempts
        max_attempts: Maximum number of ``fetch_state`` calls
        timeout: Maximum seconds to keep polling (None for no time bound)
        cancel_event: Checked before every attempt and while waiting
        sleep: Wait function, replaced in tests
        clock: Monotonic clock, replaced in tests

    Returns:
        The completed ``JobState``

    Raises:
        JobFailedError: the job reported failure (carries its message)
        JobTimeoutError: attempts or time ran out first
        JobCancelledError: ``cancel_event`` was set
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    deadline = clock() + timeout if timeout is not None else None
    state = None

    for attempt in range(1, max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise JobCancelledError(f"Polling cancelled after {attempt - 1} attempts")

        state = fetch_state()
        logger.debug("Job poll %d/%d: %s", attempt, max_attempts, state.status.value)

        if state.status == JobStatus.COMPLETED:
            return state
        if state.status == JobStatus.FAILED:
            raise JobFailedError(state.error)

        if attempt == max_attempts:
            break
        if deadline is not None and clock() + interval > deadline:
            raise JobTimeoutError(f"Job did not finish within {timeout} seconds")

        if cancel_event is not None:
            if cancel_event.wait(interval):
                raise JobCancelledError(f"Polling cancelled after {attempt} attempts")
        else:
            sleep(interval)

    last = state.status.value if state is not None else "unknown"
    raise JobTimeoutError(f"Job still {last} after {max_attempts} status checks")
