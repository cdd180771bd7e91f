import asyncio


class CancellationToken:
    """
    One-way cancellation flag shared by every step of a readiness job.

    Steps check ``cancelled`` after each await and drop their result when it
    is set. ``sleep`` wakes up early on cancellation so timers stop at once.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Cancel the token. Returns False if it was already cancelled."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds`` or until cancelled. Returns True when cancelled."""
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
