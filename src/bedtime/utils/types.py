from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

# ---- host-level primitives ----

@dataclass(slots=True)
class DnsAnswer:
    name: str
    type: Optional[str] = None
    ip: Optional[str] = None

@dataclass(slots=True)
class DnsResult:
    """
    Output of the host's DNS analyzer, stored under Connection.analyzers["dns"].
    """
    answers: list[DnsAnswer] = field(default_factory=list)

@dataclass(slots=True)
class Connection:
    timestamp: datetime          # tz-aware; hour is read in this tz
    destination_ip: str
    source_ip: str = ""
    analyzers: dict[str, object] = field(default_factory=dict)

# ---- analyzer results ----

class BedtimeResult:
    """Placeholder result handed back to the host; carries no data."""

    def key(self) -> str:
        return "netflix_detector"

    def __eq__(self, other) -> bool:
        return isinstance(other, BedtimeResult)

    def __hash__(self) -> int:
        return hash(self.key())

Policy = Literal["immediate", "threshold"]
