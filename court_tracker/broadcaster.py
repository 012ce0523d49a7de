# broadcaster.py
import asyncio
from typing import Any, Callable, Dict, List, Set

from starlette.websockets import WebSocketState

from court_tracker.events import TrackerEvent, snapshot_event
from court_tracker.logger import get_logger

logger = get_logger(__name__)

SEND_TIMEOUT_S = 5.0
MAX_PENDING = 100


def is_open(observer: Any) -> bool:
    # Anything with async send_text() can observe; websockets also expose their state
    state = getattr(observer, "client_state", WebSocketState.CONNECTED)
    return state == WebSocketState.CONNECTED


class EventBroadcaster:
    """Fans tracker events out to every connected observer.

    Each observer owns an outbox queue drained by its own writer task, so it
    receives events in the order they were produced while a slow or stalled
    observer only ever holds up itself. An observer whose send fails, takes
    longer than ``send_timeout`` or lets ``max_pending`` messages pile up is
    dropped.
    """

    def __init__(self, send_timeout: float = SEND_TIMEOUT_S, max_pending: int = MAX_PENDING):
        self.send_timeout = send_timeout
        self.max_pending = max_pending
        self._outboxes: Dict[Any, asyncio.Queue] = {}
        self._writers: Dict[Any, asyncio.Task] = {}

    @property
    def active_connections(self) -> Set[Any]:
        return set(self._outboxes)

    def connect(self, observer: Any, snapshot: Callable[[], List[dict]]) -> None:
        """Queue the current snapshot first, then subscribe the observer."""
        self.disconnect(observer)
        outbox: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        # Snapshot and subscription happen in one step: no event can fall between them
        outbox.put_nowait(snapshot_event(snapshot()).to_json())
        self._outboxes[observer] = outbox
        self._writers[observer] = asyncio.get_running_loop().create_task(self._write(observer, outbox))
        logger.info(f"Observer connected ({len(self._outboxes)} total)")

    def disconnect(self, observer: Any) -> None:
        writer = self._writers.get(observer)
        if not self._forget(observer):
            return
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
        logger.info(f"Observer disconnected ({len(self._outboxes)} total)")

    def broadcast(self, event: TrackerEvent) -> int:
        """Queue the event for every open observer; returns how many accepted it."""
        message = event.to_json()
        queued = 0
        for observer, outbox in list(self._outboxes.items()):
            if not is_open(observer):
                self.disconnect(observer)
                continue
            try:
                outbox.put_nowait(message)
                queued += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping observer with {outbox.qsize()} undelivered events before {event.type.value}")
                self.disconnect(observer)
        return queued

    async def flush(self) -> None:
        """Wait until every subscribed observer has been sent everything queued so far."""
        await asyncio.gather(*(outbox.join() for outbox in list(self._outboxes.values())))

    async def close(self) -> None:
        writers = list(self._writers.values())
        for observer in list(self._outboxes):
            self.disconnect(observer)
        await asyncio.gather(*writers, return_exceptions=True)

    def count(self) -> int:
        return len(self._outboxes)

    async def _write(self, observer: Any, outbox: asyncio.Queue) -> None:
        # Stops once the observer is unsubscribed, even by its own send
        while self._outboxes.get(observer) is outbox:
            message = await outbox.get()
            try:
                await asyncio.wait_for(observer.send_text(message), self.send_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Dropping observer that stalled for {self.send_timeout}s")
                self.disconnect(observer)
                return
            except Exception as e:
                logger.warning(f"Dropping observer after failed send: {e}")
                self.disconnect(observer)
                return
            finally:
                outbox.task_done()

    def _forget(self, observer: Any) -> bool:
        outbox = self._outboxes.pop(observer, None)
        self._writers.pop(observer, None)
        if outbox is None:
            return False
        # Release anyone waiting in flush() on messages that will never be sent
        while not outbox.empty():
            outbox.get_nowait()
            outbox.task_done()
        return True
