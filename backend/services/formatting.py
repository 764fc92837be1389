import math
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

_BYTE_UNITS = ["B", "K", "M", "G", "T"]
_KIB = 1024

_FRACTION_RE = re.compile(r"\.(\d+)")


def round_half_up(value: float, digits: int = 1) -> float:
    """
    Round like a display would: 0.25 -> 0.3, not 0.2.
    """
    if not math.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _fixed(value: float, digits: int) -> str:
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_bytes(n: Optional[float]) -> str:
    """
    Byte count -> compact binary-unit string.

    None -> "-", 0 -> "0B", 1024 -> "1K", 1536 -> "1.5K", 12582912 -> "12M".
    Values of 10 or more (and plain bytes) are shown without decimals.
    """
    if n is None or (isinstance(n, float) and not math.isfinite(n)) or n < 0:
        return "-"
    if n == 0:
        return "0B"

    idx = 0
    value = float(n)
    while value >= _KIB and idx < len(_BYTE_UNITS) - 1:
        value /= _KIB
        idx += 1

    digits = 0 if value >= 10 or idx == 0 else 1
    text = _fixed(value, digits)
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text}{_BYTE_UNITS[idx]}"


def parse_engine_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a Docker timestamp ("2024-05-01T10:00:00.123456789Z") into an aware
    datetime. Engine timestamps carry nanoseconds; anything past microseconds
    is dropped. Returns None when the value is missing or unparseable.
    """
    if not value or not isinstance(value, str):
        return None

    cleaned = value.strip()
    if cleaned.endswith("Z") or cleaned.endswith("z"):
        cleaned = cleaned[:-1] + "+00:00"
    cleaned = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), cleaned, count=1)

    try:
        dt = datetime.fromisoformat(cleaned)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_duration(started_at: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Elapsed time since `started_at`, e.g. "2d3h4m", "5h1m0s", "1m30s", "42s".
    Missing, unparseable or future timestamps render as "-".
    """
    start = parse_engine_timestamp(started_at)
    if start is None:
        return "-"

    now = now or datetime.now(timezone.utc)
    diff = (now - start).total_seconds()
    if diff < 0:
        return "-"

    seconds = int(diff)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if days > 0:
        return f"{days}d{hours}h{minutes}m"
    if hours > 0:
        return f"{hours}h{minutes}m{secs}s"
    if minutes > 0:
        return f"{minutes}m{secs}s"
    return f"{secs}s"
