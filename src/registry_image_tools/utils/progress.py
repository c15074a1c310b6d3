"""Progress callback dispatch."""

import asyncio
from typing import Awaitable, Callable, Optional, Union

ProgressCallback = Callable[[int, int, str], Union[None, Awaitable[None]]]


async def report_progress(
    callback: Optional[ProgressCallback], current: int, total: int, message: str
) -> None:
    """Invoke a sync or async progress callback, if one was given."""
    if callback is None:
        return
    if asyncio.iscoroutinefunction(callback):
        await callback(current, total, message)
    else:
        callback(current, total, message)
