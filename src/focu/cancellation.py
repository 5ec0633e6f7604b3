"""Cooperative cancellation for in-flight replies.

A token is issued per chat turn and threaded explicitly through every
yield point of a stream. Cancelling it is a clean stop, not an error.
"""

import asyncio


class CancellationToken:
    """One-shot cancellation flag shared by a turn and its stream.

    Usage:
        token = CancellationToken()
        async for chunk in await adapter.stream(messages, model, cancel_token=token):
            if token.cancelled:
                break
        token.cancel()  # from another task, e.g. a stop button
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> bool:
        """Cancel the token.

        Returns:
            True if this call cancelled it, False if it already was
        """
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken {state}>"
