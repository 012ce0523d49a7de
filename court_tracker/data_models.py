# data_models.py
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


class CourtStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class SportType(str, Enum):
    BADMINTON = "badminton"
    VOLLEYBALL = "volleyball"
    CARROM = "carrom"
    BASKETBALL = "basketball"
    FOOTBALL = "football"
    TENNIS = "tennis"


class EndReason(str, Enum):
    """Why a session left the active set."""
    RELEASED = "released"
    EXPIRED = "expired"
    ADMINISTRATIVE = "administrative"


@dataclass(frozen=True)
class Session:
    """An active reservation of one court by one user. Times are epoch milliseconds."""
    id: str
    court_id: str
    user_id: str
    start_time: int
    end_time: int
    user_email: Optional[str] = None

    def time_remaining(self, now: int) -> int:
        return max(0, self.end_time - now)

    def to_dict(self, now: Optional[int] = None) -> dict:
        data = asdict(self)
        if now is not None:
            data["time_remaining"] = self.time_remaining(now)
        return data


@dataclass
class Court:
    """A bookable court, board or field. Only the session manager changes its occupancy."""
    id: str
    sport: SportType
    name: str
    court_number: int
    status: CourtStatus = CourtStatus.AVAILABLE
    current_session: Optional[Session] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sport": self.sport.value,
            "name": self.name,
            "court_number": self.court_number,
            "status": self.status.value,
            "current_session": self.current_session.to_dict() if self.current_session else None,
        }


SPORT_METADATA = {
    SportType.BADMINTON: {"name": "Badminton", "icon": "activity", "color": "chart-1"},
    SportType.VOLLEYBALL: {"name": "Volleyball", "icon": "circle", "color": "chart-2"},
    SportType.CARROM: {"name": "Carrom", "icon": "grid-3x3", "color": "chart-3"},
    SportType.BASKETBALL: {"name": "Basketball", "icon": "circle-dot", "color": "chart-4"},
    SportType.FOOTBALL: {"name": "Football", "icon": "hexagon", "color": "chart-5"},
    SportType.TENNIS: {"name": "Tennis", "icon": "activity", "color": "chart-1"},
}

# Seed catalog, in display order
INITIAL_COURTS = [
    {"id": "bad-1", "sport": SportType.BADMINTON, "name": "Badminton Court 1", "court_number": 1},
    {"id": "bad-2", "sport": SportType.BADMINTON, "name": "Badminton Court 2", "court_number": 2},
    {"id": "vol-1", "sport": SportType.VOLLEYBALL, "name": "Volleyball Court 1", "court_number": 1},
    {"id": "vol-2", "sport": SportType.VOLLEYBALL, "name": "Volleyball Court 2", "court_number": 2},
    {"id": "car-1", "sport": SportType.CARROM, "name": "Carrom Board 1", "court_number": 1},
    {"id": "car-2", "sport": SportType.CARROM, "name": "Carrom Board 2", "court_number": 2},
    {"id": "car-3", "sport": SportType.CARROM, "name": "Carrom Board 3", "court_number": 3},
    {"id": "car-4", "sport": SportType.CARROM, "name": "Carrom Board 4", "court_number": 4},
    {"id": "car-5", "sport": SportType.CARROM, "name": "Carrom Board 5", "court_number": 5},
    {"id": "bas-1", "sport": SportType.BASKETBALL, "name": "Basketball Court 1", "court_number": 1},
    {"id": "bas-2", "sport": SportType.BASKETBALL, "name": "Basketball Court 2", "court_number": 2},
    {"id": "foo-1", "sport": SportType.FOOTBALL, "name": "Football Field", "court_number": 1},
    {"id": "ten-1", "sport": SportType.TENNIS, "name": "Tennis Court", "court_number": 1},
]
