# events.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class EventType(str, Enum):
    COURT_UPDATE = "court_update"        # full snapshot replace
    COURT_CHANGED = "court_changed"      # single court replace
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    SESSION_WARNING = "session_warning"
    SESSION_EXPIRED = "session_expired"


class TrackerEvent(BaseModel):
    """A push message. Each carries enough court state to apply without a refetch."""
    type: EventType
    court_id: Optional[str] = None
    court: Optional[dict] = None
    courts: Optional[List[dict]] = None
    session: Optional[dict] = None
    message: Optional[str] = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def snapshot_event(courts: List[dict]) -> TrackerEvent:
    return TrackerEvent(type=EventType.COURT_UPDATE, courts=courts)


def court_changed_event(court: dict, message: Optional[str] = None) -> TrackerEvent:
    return TrackerEvent(type=EventType.COURT_CHANGED, court_id=court["id"], court=court, message=message)


def check_in_event(court: dict, courts: List[dict], session: dict) -> TrackerEvent:
    return TrackerEvent(type=EventType.CHECK_IN, court_id=court["id"], court=court, courts=courts, session=session)


def check_out_event(court: dict, courts: List[dict]) -> TrackerEvent:
    return TrackerEvent(type=EventType.CHECK_OUT, court_id=court["id"], court=court, courts=courts)


def warning_event(court: dict, courts: List[dict], minutes_left: int) -> TrackerEvent:
    return TrackerEvent(
        type=EventType.SESSION_WARNING,
        court_id=court["id"],
        court=court,
        courts=courts,
        message=f"{court['name']} - Only {minutes_left} minutes remaining!",
    )


def expired_event(court: dict, courts: List[dict]) -> TrackerEvent:
    return TrackerEvent(
        type=EventType.SESSION_EXPIRED,
        court_id=court["id"],
        court=court,
        courts=courts,
        message=f"{court['name']} session has expired and is now available",
    )
