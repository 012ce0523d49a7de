# scheduler.py
import asyncio
from enum import Enum
from typing import Awaitable, Callable, Dict, Set

from court_tracker.data_models import Session
from court_tracker.logger import get_logger
from court_tracker.sessions import epoch_ms

logger = get_logger(__name__)

TimerCallback = Callable[[str], Awaitable[None]]


class TimerKind(str, Enum):
    WARNING = "warning"
    EXPIRY = "expiry"


class ExpiryScheduler:
    """Per-session expiry and warning timers on the running event loop.

    Each armed session gets two independent timers, keyed by session id. A
    timer fires at most once; cancelling is idempotent and cancelling an
    unknown id is a no-op. When a timer fires its callback runs as a task and
    receives only the session id, so the callback must re-read current state.
    """

    def __init__(
        self,
        on_expire: TimerCallback,
        on_warning: TimerCallback,
        warning_lead_ms: int,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.on_expire = on_expire
        self.on_warning = on_warning
        self.warning_lead_ms = warning_lead_ms
        self.clock = clock
        self._timers: Dict[str, Dict[TimerKind, asyncio.TimerHandle]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def arm(self, session: Session) -> None:
        loop = asyncio.get_running_loop()
        now = self.clock()
        expiry_delay = max(0, session.end_time - now) / 1000
        warning_delay = max(0, session.end_time - self.warning_lead_ms - now) / 1000

        self.cancel(session.id)
        self._timers[session.id] = {
            TimerKind.WARNING: loop.call_later(warning_delay, self._fire, TimerKind.WARNING, session.id),
            TimerKind.EXPIRY: loop.call_later(expiry_delay, self._fire, TimerKind.EXPIRY, session.id),
        }
        logger.debug(f"Armed session {session.id}: warning in {warning_delay:.1f}s, expiry in {expiry_delay:.1f}s")

    def cancel(self, session_id: str) -> None:
        handles = self._timers.pop(session_id, None)
        if not handles:
            return
        for handle in handles.values():
            handle.cancel()
        logger.debug(f"Cancelled {len(handles)} pending timer(s) for session {session_id}")

    def pending(self, session_id: str) -> Set[TimerKind]:
        return set(self._timers.get(session_id, {}))

    async def trigger(self, session_id: str, kind: TimerKind) -> bool:
        """Fire a pending timer right away and wait for its callback.

        Returns False when no such timer is armed.
        """
        handle = self._take(session_id, kind)
        if handle is None:
            return False
        handle.cancel()
        await self._run(kind, session_id)
        return True

    async def shutdown(self) -> None:
        """Cancel every pending timer and wait for running callbacks to unwind."""
        for session_id in list(self._timers):
            self.cancel(session_id)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _take(self, session_id: str, kind: TimerKind):
        handles = self._timers.get(session_id)
        if handles is None:
            return None
        handle = handles.pop(kind, None)
        if not handles:
            del self._timers[session_id]
        return handle

    def _fire(self, kind: TimerKind, session_id: str) -> None:
        if self._take(session_id, kind) is None:
            return
        task = asyncio.get_running_loop().create_task(self._run(kind, session_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, kind: TimerKind, session_id: str) -> None:
        callback = self.on_expire if kind == TimerKind.EXPIRY else self.on_warning
        try:
            await callback(session_id)
        except Exception:
            # Timer paths never surface errors to users
            logger.exception(f"{kind.value} timer for session {session_id} failed")
