# config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

# One fixed reservation length, with the warning pushed this long before expiry
DEFAULT_SESSION_DURATION_MS = 60 * 60 * 1000
DEFAULT_WARNING_LEAD_MS = 10 * 60 * 1000


@dataclass(frozen=True)
class Settings:
    """Deployment settings for the occupancy tracker."""
    session_duration_ms: int = DEFAULT_SESSION_DURATION_MS
    warning_lead_ms: int = DEFAULT_WARNING_LEAD_MS
    log_level: str = "INFO"

    def __post_init__(self):
        if self.session_duration_ms <= 0:
            raise ValueError("SESSION_DURATION_MS must be positive")
        if not 0 < self.warning_lead_ms < self.session_duration_ms:
            raise ValueError("WARNING_LEAD_MS must be positive and shorter than SESSION_DURATION_MS")

    @property
    def warning_lead_minutes(self) -> int:
        return max(1, round(self.warning_lead_ms / 60000))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            session_duration_ms=int(os.getenv("SESSION_DURATION_MS", DEFAULT_SESSION_DURATION_MS)),
            warning_lead_ms=int(os.getenv("WARNING_LEAD_MS", DEFAULT_WARNING_LEAD_MS)),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
