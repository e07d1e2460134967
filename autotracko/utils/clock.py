from __future__ import annotations
from datetime import datetime, timezone

def utc_now_iso(timespec: str = "milliseconds") -> str:
    """UTC now as ISO-8601 with a trailing ``Z`` (e.g. ``2024-05-01T10:00:00.123Z``)."""
    return datetime.now(timezone.utc).isoformat(timespec=timespec).replace("+00:00", "Z")

def epoch_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
