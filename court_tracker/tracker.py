# tracker.py
from typing import Any, Callable, List, Optional, Tuple

from court_tracker.broadcaster import EventBroadcaster
from court_tracker.config import Settings
from court_tracker.data_models import Court, Session
from court_tracker.events import (
    check_in_event,
    check_out_event,
    court_changed_event,
    expired_event,
    warning_event,
)
from court_tracker.logger import get_logger
from court_tracker.registry import CourtRegistry
from court_tracker.scheduler import ExpiryScheduler
from court_tracker.sessions import SessionManager, epoch_ms

logger = get_logger(__name__)


class CourtTracker:
    """Main system wiring the registry, sessions, timers and broadcaster.

    One instance exists per process. Every mutation runs synchronously and the
    matching event is queued for observers in the same step, so the broadcast
    carries exactly the state the mutation produced.
    """

    def __init__(
        self,
        registry: CourtRegistry,
        settings: Settings,
        broadcaster: Optional[EventBroadcaster] = None,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.registry = registry
        self.settings = settings
        self.clock = clock
        self.broadcaster = broadcaster or EventBroadcaster()
        self.scheduler = ExpiryScheduler(
            on_expire=self.handle_expiry,
            on_warning=self.handle_warning,
            warning_lead_ms=settings.warning_lead_ms,
            clock=clock,
        )
        self.sessions = SessionManager(
            registry,
            self.scheduler,
            session_duration_ms=settings.session_duration_ms,
            clock=clock,
        )

    def list_courts(self) -> List[Court]:
        return self.registry.list()

    def get_court(self, court_id: str) -> Court:
        return self.registry.get(court_id)

    async def check_in(self, court_id: str, user_id: str, user_email: Optional[str] = None) -> Tuple[Court, Session]:
        session = self.sessions.reserve(court_id, user_id, user_email)
        court = self.registry.get(court_id)
        event = check_in_event(court.to_dict(), self.registry.snapshot(), session.to_dict())
        self.broadcaster.broadcast(event)
        return court, session

    async def check_out(self, court_id: str) -> Court:
        court = self.sessions.release(court_id)
        event = check_out_event(court.to_dict(), self.registry.snapshot())
        self.broadcaster.broadcast(event)
        return court

    async def sweep(self) -> List[Court]:
        """End every live session, pushing one court update per freed court."""
        freed = self.sessions.sweep()
        events = [court_changed_event(court.to_dict(), f"{court.name} was released by an administrator") for court in freed]
        for event in events:
            self.broadcaster.broadcast(event)
        logger.info(f"Administrative sweep freed {len(freed)} court(s)")
        return freed

    async def handle_expiry(self, session_id: str) -> None:
        court = self.sessions.expire_now(session_id)
        if court is None:
            return
        event = expired_event(court.to_dict(), self.registry.snapshot())
        self.broadcaster.broadcast(event)
        logger.info(f"Auto checkout completed for court {court.id}")

    async def handle_warning(self, session_id: str) -> None:
        session = self.sessions.get(session_id)
        if session is None:
            logger.debug(f"Warning for session {session_id} suppressed: session already ended")
            return
        court = self.registry.get(session.court_id)
        event = warning_event(court.to_dict(), self.registry.snapshot(), self.settings.warning_lead_minutes)
        self.broadcaster.broadcast(event)
        logger.info(f"Sent expiry warning for {court.name}")

    def connect(self, observer: Any) -> None:
        self.broadcaster.connect(observer, self.registry.snapshot)

    def disconnect(self, observer: Any) -> None:
        self.broadcaster.disconnect(observer)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.broadcaster.close()
