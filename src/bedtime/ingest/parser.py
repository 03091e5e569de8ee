from __future__ import annotations
from typing import Optional
from bedtime.utils.types import Connection, DnsAnswer, DnsResult
from bedtime.utils.time import to_datetime

def parse_dns(m) -> Optional[DnsResult]:
    """
    Return DnsResult for a raw "dns" analyzer entry; None if it isn't one.

    Accepted shapes:
      - DnsResult                                  (already parsed)
      - {"answers": [{"name": "x.netflix.com", "type": "A", "ip": "..."}]}
    Answers without a name are skipped.
    """
    if isinstance(m, DnsResult):
        return m
    if not isinstance(m, dict):
        return None
    raw = m.get("answers") or m.get("Answers") or []
    if not isinstance(raw, list):
        return None
    answers = []
    for a in raw:
        if not isinstance(a, dict):
            continue
        name = a.get("name") or a.get("Name")
        if not name:
            continue
        answers.append(DnsAnswer(name=str(name), type=a.get("type"), ip=a.get("ip")))
    return DnsResult(answers=answers)

def parse_connection(m: dict) -> Optional[Connection]:
    """
    Return Connection if `m` looks like a host connection record; else None.

    Common fields:
      - "timestamp": "2024-02-01T23:32:01-06:00"   (ISO, epoch s/ms/ns, or datetime)
      - "destination_ip": "192.168.1.20"           (also "dst_ip", "DestinationIP")
      - "source_ip": "8.8.8.8"
      - "analyzers": {"dns": {"answers": [...]}}
    A "dns" entry that can't be parsed is kept as-is so the detector can flag it.
    """
    ts = to_datetime(m.get("timestamp") or m.get("Timestamp") or m.get("ts"))
    dst = m.get("destination_ip") or m.get("dst_ip") or m.get("DestinationIP")
    if ts is None or dst is None:
        return None

    raw = m.get("analyzers") or m.get("Analyzers") or {}
    if not isinstance(raw, dict):
        return None
    analyzers = dict(raw)
    if "dns" in analyzers:
        analyzers["dns"] = parse_dns(analyzers["dns"]) or analyzers["dns"]

    src = m.get("source_ip") or m.get("src_ip") or m.get("SourceIP") or ""
    return Connection(timestamp=ts, destination_ip=str(dst), source_ip=str(src), analyzers=analyzers)
