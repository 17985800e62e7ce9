"""Cancellable delayed execution on the running asyncio loop."""

import asyncio
from typing import Callable


class DelayedTask:
    """Run a callback once after a delay unless cancelled first.

    The handle is invalidated by cancel(); a callback that has already
    fired is not affected.
    """

    def __init__(self, delay_seconds: float, callback: Callable[[], None]):
        self.delay_seconds = max(0.0, delay_seconds)
        self._callback = callback
        self._fired = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._fired = True
        self._callback()

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def pending(self) -> bool:
        return not self._fired and not self._task.done()

    def cancel(self) -> bool:
        """Cancel the callback if it has not fired yet. Returns True if cancelled."""
        if not self.pending:
            return False
        self._task.cancel()
        return True

    async def wait(self) -> None:
        """Wait until the callback has fired or the task was cancelled."""
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
