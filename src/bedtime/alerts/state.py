from __future__ import annotations
from dataclasses import dataclass

@dataclass(slots=True)
class DetectorState:
    occurrence_count: int = 0            # hits since the last successful send (threshold policy)
    already_notified: bool = False       # one-shot flag (immediate policy); never cleared
    initialization_failed: bool = False  # set once at startup when config can't be loaded

    @property
    def disabled(self) -> bool:
        return self.initialization_failed or self.already_notified
