# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Bounded readiness polling."""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def wait_until(
    predicate: Callable[[], object],
    timeout: float,
    interval: float = 1.0,
    description: Optional[str] = None,
) -> bool:
    """Call predicate until it returns truthy or timeout elapses.

    The predicate runs at least once. The last sleep is clipped to the
    remaining time so one final check happens right at the deadline.
    Exceptions raised by the predicate propagate to the caller.

    Args:
        predicate: Zero-argument callable, truthy result means ready
        timeout: Maximum wait time in seconds
        interval: Delay between attempts in seconds
        description: What is being waited for (for logs)

    Returns:
        True if the predicate succeeded, False on timeout
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    what = description or getattr(predicate, "__name__", "condition")
    start = time.monotonic()
    deadline = start + timeout
    attempt = 0

    logger.debug(f"Waiting up to {timeout}s for {what}")
    while True:
        attempt += 1
        if predicate():
            elapsed = time.monotonic() - start
            logger.debug(f"{what} ready after {elapsed:.1f}s ({attempt} attempts)")
            return True

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.debug(f"Timed out after {timeout}s waiting for {what} ({attempt} attempts)")
            return False

        logger.debug(f"{what} not ready (attempt {attempt}), {remaining:.1f}s left")
        time.sleep(min(interval, remaining))
