"""
Elapsed-time and pace helpers for segment reports.

Strava hands segment reference times back either as seconds or as display
strings ("5:58", "1:02:03", sometimes "58s"); `parse_time_string` accepts
both and returns None instead of raising on anything it can't read.
"""

import math
from typing import Optional, Union

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching how the web client rounds."""
    return int(math.floor(value + 0.5))


def _is_finite_number(value) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large for a float
        return False


def format_elapsed(seconds: Optional[Number]) -> Optional[str]:
    """Format seconds as M:SS, or H:MM:SS from one hour up."""
    if not _is_finite_number(seconds) or seconds < 0:
        return None
    total = round_half_up(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_gap(gap_seconds: Optional[Number]) -> Optional[str]:
    if not _is_finite_number(gap_seconds):
        return None
    sign = "+" if gap_seconds >= 0 else "-"
    return f"{sign}{format_elapsed(abs(gap_seconds))}"


def pace_seconds_per_km(seconds: Optional[Number], distance_m: Optional[Number]) -> Optional[float]:
    if not _is_finite_number(seconds) or not seconds:
        return None
    if not _is_finite_number(distance_m) or distance_m <= 0:
        return None
    return seconds / (distance_m / 1000.0)


def format_pace(sec_per_km: Optional[float]) -> Optional[str]:
    if not _is_finite_number(sec_per_km) or sec_per_km < 0:
        return None
    total = round_half_up(sec_per_km)
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}/km"


def parse_time_string(value) -> Optional[Number]:
    """
    Convert a reference time to seconds.

    Accepts numbers, numeric strings, "M:SS", "H:MM:SS" and a trailing "s".
    Malformed or negative input returns None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if _is_finite_number(value) and value >= 0 else None
    if not isinstance(value, str):
        return None

    text = value.strip().lower()
    if text.endswith("s"):
        text = text[:-1].strip()
    if not text:
        return None

    parts = text.split(":")
    if len(parts) > 3:
        return None

    total = 0.0
    for i, part in enumerate(parts):
        part = part.strip()
        is_last = i == len(parts) - 1
        # Only the seconds component may carry a fraction.
        if is_last:
            try:
                number = float(part)
            except ValueError:
                return None
            if not math.isfinite(number):
                return None
        else:
            if not part.isdigit():
                return None
            try:
                number = float(int(part))
            except (ValueError, OverflowError):
                # Past the int-string digit limit, or too large for a float.
                return None
        if number < 0:
            return None
        if i > 0 and number >= 60:
            return None
        total = total * 60 + number
    if not math.isfinite(total):
        return None
    return int(total) if total.is_integer() else total
