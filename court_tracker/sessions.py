# sessions.py
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from court_tracker.data_models import Court, CourtStatus, EndReason, Session
from court_tracker.exceptions import (
    CourtNotOccupied,
    CourtOccupied,
    InvariantViolation,
    UserAlreadyActive,
)
from court_tracker.logger import get_logger
from court_tracker.registry import CourtRegistry

logger = get_logger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    """Owns the authoritative set of live sessions.

    Every public mutator runs to completion without awaiting, so on a single
    event loop a reservation, a release and a timer-driven expiry can never
    interleave. The scheduler only ever sees session ids.
    """

    def __init__(
        self,
        registry: CourtRegistry,
        scheduler,
        session_duration_ms: int,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.session_duration_ms = session_duration_ms
        self.clock = clock
        self._sessions: Dict[str, Session] = {}

    def reserve(self, court_id: str, user_id: str, user_email: Optional[str] = None) -> Session:
        court = self.registry.get(court_id)
        if court.status == CourtStatus.OCCUPIED:
            raise CourtOccupied(court_id)

        existing = self.active_session_for_user(user_id)
        if existing is not None:
            held = self.registry.get(existing.court_id)
            raise UserAlreadyActive(held.id, held.name)

        start_time = self.clock()
        session = Session(
            id=uuid.uuid4().hex,
            court_id=court_id,
            user_id=user_id,
            user_email=user_email,
            start_time=start_time,
            end_time=start_time + self.session_duration_ms,
        )
        # Arm first: if scheduling fails nothing has been mutated yet
        self.scheduler.arm(session)
        self._sessions[session.id] = session
        self.registry.set_occupancy(court_id, CourtStatus.OCCUPIED, session)

        logger.info(f"Check-in: {court.name} by user {user_id} (session {session.id})")
        return session

    def release(self, court_id: str) -> Court:
        court = self.registry.get(court_id)
        if court.status == CourtStatus.AVAILABLE:
            raise CourtNotOccupied(court_id)
        return self._end(court, EndReason.RELEASED)

    def expire_now(self, session_id: str) -> Optional[Court]:
        """Timer path. Ends the session only if it still owns its court."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug(f"Expiry for session {session_id} ignored: already ended")
            return None

        court = self.registry.get(session.court_id)
        current = court.current_session
        if court.status != CourtStatus.OCCUPIED or current is None or current.id != session_id:
            logger.warning(f"Expiry for session {session_id} ignored: {court.id} is held by another session")
            return None

        return self._end(court, EndReason.EXPIRED)

    def sweep(self) -> List[Court]:
        """End every live session on operator request."""
        freed = []
        for session in list(self._sessions.values()):
            court = self.registry.get(session.court_id)
            freed.append(self._end(court, EndReason.ADMINISTRATIVE))
        return freed

    def _end(self, court: Court, reason: EndReason) -> Court:
        session = court.current_session
        if session is not None:
            self._sessions.pop(session.id, None)
            self.scheduler.cancel(session.id)
        self.registry.set_occupancy(court.id, CourtStatus.AVAILABLE)

        logger.info(f"Session ended ({reason.value}): {court.name}")
        return court

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def active_sessions(self) -> List[Session]:
        return list(self._sessions.values())

    def active_session_for_user(self, user_id: str) -> Optional[Session]:
        for session in self._sessions.values():
            if session.user_id == user_id:
                return session
        return None

    def active_session_for_court(self, court_id: str) -> Optional[Session]:
        court = self.registry.get(court_id)
        return court.current_session

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the registry and session set disagree."""
        problems: List[Tuple[str, str]] = []
        referenced = set()
        for court in self.registry.list():
            session = court.current_session
            occupied = court.status == CourtStatus.OCCUPIED
            if occupied != (session is not None):
                problems.append((court.id, "status does not match session reference"))
            if session is not None:
                if self._sessions.get(session.id) is not session:
                    problems.append((court.id, f"session {session.id} is not live"))
                referenced.add(session.id)

        orphaned = set(self._sessions) - referenced
        for session_id in orphaned:
            problems.append((self._sessions[session_id].court_id, f"session {session_id} has no court"))

        users = [session.user_id for session in self._sessions.values()]
        if len(users) != len(set(users)):
            problems.append(("*", "a user holds more than one session"))

        for session in self._sessions.values():
            if session.end_time - session.start_time != self.session_duration_ms:
                problems.append((session.court_id, f"session {session.id} has the wrong duration"))

        if problems:
            raise InvariantViolation("Occupancy state is inconsistent", {"problems": problems})
