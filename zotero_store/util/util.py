"""
Utility module for zotero_store.

Common utilities used across the project.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import ProvisioningTimeoutError


T = TypeVar('T')


async def poll_until(
    probe: Callable[[], Awaitable[Optional[T]]],
    target: str,
    timeout: float,
    interval: float = 100,
    what: str = "creating",
) -> T:
    """
    Call ``probe`` on a fixed interval until it returns something other than None.

    The deadline is absolute: start time plus ``timeout``, regardless of how
    long each probe takes.

    Args:
        probe: Async function returning the result, or None while not ready
        target: Name of the awaited object, used in the timeout error
        timeout: Deadline in milliseconds
        interval: Delay between probes in milliseconds
        what: Verb phrase for the timeout message

    Returns:
        The first non-None result of ``probe``

    Raises:
        ProvisioningTimeoutError: If the deadline passes first
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    deadline = start + timeout / 1000

    while True:
        result = await probe()
        if result is not None:
            return result
        if loop.time() >= deadline:
            elapsed = (loop.time() - start) * 1000
            raise ProvisioningTimeoutError(
                f"Timeout of {timeout:g} ms reached when {what} {target} "
                f"(waited {format_duration(elapsed / 1000)})",
                target,
                timeout,
                elapsed,
            )
        await asyncio.sleep(interval / 1000)


def format_duration(seconds: float) -> str:
    """Format duration into human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        mins = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{mins}m {secs}s"
    else:
        hours = int(seconds // 3600)
        mins = int((seconds % 3600) // 60)
        return f"{hours}h {mins}m"
