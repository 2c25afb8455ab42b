"""
Wire format for activity due dates.

Input accepts ``yyyy-MM-ddTHH:mm:ss`` with optional fractional seconds and
an optional ``Z`` or UTC offset; zoned values are converted to UTC and the
zone is dropped. Output is always ``yyyy-MM-ddTHH:mm:ss``.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

WIRE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_WIRE_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?P<fraction>\.\d{1,7})?"
    r"(?P<zone>Z|[+-]\d{2}:?\d{2})?$"
)


def _parse_zone(zone: str) -> timezone:
    if zone == "Z":
        return timezone.utc
    digits = zone[1:].replace(":", "")
    offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(-offset if zone[0] == "-" else offset)


def parse_wire_datetime(value: str) -> datetime:
    match = _WIRE_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid date format: {value!r}")

    parsed = datetime.strptime(match.group("base"), WIRE_FORMAT)
    fraction = match.group("fraction")
    if fraction:
        # Up to 7 digits are accepted; keep microsecond precision.
        parsed = parsed.replace(microsecond=int(fraction[1:7].ljust(6, "0")))

    zone = match.group("zone")
    if zone:
        parsed = parsed.replace(tzinfo=_parse_zone(zone))
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_wire_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat()
