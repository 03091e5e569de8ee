# src/bedtime/alerts/rules.py
from __future__ import annotations
from dataclasses import dataclass

from bedtime.config import Settings
from bedtime.utils.types import Policy

@dataclass(frozen=True, slots=True)
class NightWindow:
    """
    Hours during which lookups count.
    - start > end  → wraps midnight: hour >= start or hour < end
                     (22, 6 → 22:00–05:59; 22, 0 → 22:00–23:59)
    - start <= end → same-day range: start <= hour < end
    """
    start_hour: int = 22
    end_hour: int = 6

    def contains(self, hour: int) -> bool:
        if self.start_hour > self.end_hour:
            return hour >= self.start_hour or hour < self.end_hour
        return self.start_hour <= hour < self.end_hour

@dataclass(frozen=True, slots=True)
class NetflixRule:
    name: str = "netflix_detector"
    target: str = "netflix"
    window: NightWindow = NightWindow()
    policy: Policy = "immediate"
    threshold: int = 10

    @classmethod
    def from_settings(cls, s: Settings) -> "NetflixRule":
        return cls(
            target=s.target,
            window=NightWindow(s.night_start_hour, s.night_end_hour),
            policy=s.policy,
            threshold=s.threshold,
        )

    def matches(self, name: str) -> bool:
        return self.target.lower() in (name or "").lower()
