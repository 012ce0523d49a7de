# registry.py
from collections import Counter
from typing import Dict, Iterable, List, Optional

from court_tracker.data_models import Court, CourtStatus, Session
from court_tracker.exceptions import CourtNotFound


class CourtRegistry:
    """Holds the fixed court catalog and each court's current occupancy.

    The registry does no locking of its own; the session manager is its only
    writer and serialises access.
    """

    def __init__(self, courts: Iterable[Court]):
        # dicts keep insertion order, which is the catalog order
        self._courts: Dict[str, Court] = {court.id: court for court in courts}

    def list(self) -> List[Court]:
        return list(self._courts.values())

    def get(self, court_id: str) -> Court:
        court = self._courts.get(court_id)
        if court is None:
            raise CourtNotFound(court_id)
        return court

    def set_occupancy(self, court_id: str, status: CourtStatus, session: Optional[Session] = None) -> Court:
        court = self.get(court_id)
        court.status = status
        court.current_session = session
        return court

    def snapshot(self) -> List[dict]:
        """Serialised copy of every court, safe to hand to a later broadcast."""
        return [court.to_dict() for court in self._courts.values()]

    def summary(self) -> dict:
        """Occupancy counts overall and per sport."""
        totals = Counter()
        per_sport: Dict[str, Counter] = {}
        for court in self._courts.values():
            sport_counts = per_sport.setdefault(court.sport.value, Counter())
            for counts in (totals, sport_counts):
                counts["total"] += 1
                counts[court.status.value] += 1

        def as_dict(counts: Counter) -> dict:
            return {
                "total": counts["total"],
                "available": counts[CourtStatus.AVAILABLE.value],
                "occupied": counts[CourtStatus.OCCUPIED.value],
            }

        return {
            **as_dict(totals),
            "by_sport": {sport: as_dict(counts) for sport, counts in per_sport.items()},
        }

    def __len__(self) -> int:
        return len(self._courts)
