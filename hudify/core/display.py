"""Display sink that queues messages for the session's WebSocket."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class QueueDisplay:
    """show_message never blocks; pump() sends queued messages in call order.

    Once a send fails the channel is closed and later messages are dropped.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self.closed = False

    def __len__(self) -> int:
        return self._queue.qsize()

    def show_message(self, text: str, duration_ms: Optional[int] = None) -> None:
        if self.closed:
            logger.debug("Display closed, dropping message: %r", text[:40])
            return
        self._queue.put_nowait({"type": "display", "text": text, "duration_ms": duration_ms})

    async def pump(self, send: Callable[[Dict[str, Any]], Awaitable[None]]) -> None:
        while True:
            message = await self._queue.get()
            try:
                await send(message)
            except Exception as e:
                logger.info("Display channel closed: %s", e)
                self.closed = True
                while not self._queue.empty():
                    self._queue.get_nowait()
                return
