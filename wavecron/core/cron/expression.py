"""Cron expression evaluation — 5-field minute/hour/day/month/weekday.

``next_run`` scans forward minute by minute for at most 48 hours. Schedules
that do not fire inside that window (e.g. a single day in February, or a
day-of-month / day-of-week pair that rarely coincides) evaluate to ``None``
and are never armed. Day-of-month and day-of-week must BOTH match; the
classic cron "either" rule is not applied.
"""

from __future__ import annotations

from datetime import datetime, timedelta

SEARCH_WINDOW_MINUTES = 48 * 60

_WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

# minute, hour, day-of-month, month, day-of-week
_FIELD_RANGES = ((0, 59), (0, 23), (1, 31), (1, 12), (0, 7))


def parse_field(field: str, min_value: int, max_value: int) -> set[int] | None:
    """Expand one cron field into the set of matching integers.

    Supports ``*``, lists (``1,2,5``), ranges (``1-5``) and steps
    (``*/15``, ``5/10``). Returns ``None`` when the field cannot be parsed.

        >>> sorted(parse_field("*/15", 0, 59))
        [0, 15, 30, 45]
    """
    values: set[int] = set()
    try:
        for part in field.split(","):
            if part == "*":
                values.update(range(min_value, max_value + 1))
            elif "/" in part:
                base, step_str = part.split("/")
                step = int(step_str)
                if step <= 0:
                    return None
                start = min_value if base == "*" else int(base)
                values.update(range(start, max_value + 1, step))
            elif "-" in part:
                start_str, end_str = part.split("-")
                values.update(range(int(start_str), int(end_str) + 1))
            else:
                values.add(int(part))
    except ValueError:
        return None
    return {v for v in values if min_value <= v <= max_value}


def _split(expr: str) -> list[str] | None:
    parts = expr.strip().split()
    return parts if len(parts) == 5 else None


def _calendar_matches(dom: str, month: str, dow: str, moment: datetime) -> bool:
    if dom != "*":
        days = parse_field(dom, 1, 31)
        if not days or moment.day not in days:
            return False
    if month != "*":
        months = parse_field(month, 1, 12)
        if not months or moment.month not in months:
            return False
    if dow != "*":
        weekdays = parse_field(dow, 0, 7)
        if not weekdays:
            return False
        # datetime: Monday=0 .. Sunday=6; cron: Sunday=0 (or 7) .. Saturday=6
        cron_dow = (moment.weekday() + 1) % 7
        if cron_dow not in weekdays and not (cron_dow == 0 and 7 in weekdays):
            return False
    return True


def matches(expr: str, moment: datetime) -> bool:
    """True if ``moment`` (to the minute) satisfies the expression."""
    parts = _split(expr)
    if parts is None:
        return False
    minutes = parse_field(parts[0], 0, 59)
    hours = parse_field(parts[1], 0, 23)
    if not minutes or not hours:
        return False
    return (
        moment.minute in minutes
        and moment.hour in hours
        and _calendar_matches(parts[2], parts[3], parts[4], moment)
    )


def next_run(expr: str, from_time: datetime | None = None) -> datetime | None:
    """Next minute strictly after ``from_time`` that matches ``expr``.

    Returns ``None`` for malformed expressions and for schedules that do not
    fire within the next 48 hours.
    """
    parts = _split(expr)
    if parts is None:
        return None
    minutes = parse_field(parts[0], 0, 59)
    hours = parse_field(parts[1], 0, 23)
    if not minutes or not hours:
        return None

    base = from_time or datetime.now()
    for i in range(1, SEARCH_WINDOW_MINUTES + 1):
        candidate = (base + timedelta(minutes=i)).replace(second=0, microsecond=0)
        if candidate.minute not in minutes or candidate.hour not in hours:
            continue
        if _calendar_matches(parts[2], parts[3], parts[4], candidate):
            return candidate
    return None


def next_run_iso(expr: str) -> str | None:
    nxt = next_run(expr)
    return nxt.isoformat() if nxt else None


def is_valid(expr: str) -> bool:
    """True if the expression parses and fires within the search window."""
    return next_run(expr) is not None


def describe(expr: str) -> str:
    """Human-readable label for common shapes; the raw expression otherwise."""
    parts = _split(expr)
    if parts is None:
        return expr
    if any(not parse_field(f, lo, hi) for f, (lo, hi) in zip(parts, _FIELD_RANGES)):
        return expr
    minute, hour, dom, month, dow = parts

    if dom != "*" or month != "*":
        return expr

    if minute == "0" and dow == "*":
        if hour in ("*", "*/1"):
            return "Every hour"
        if hour.startswith("*/") and hour[2:].isdigit() and 2 <= int(hour[2:]) <= 23:
            return f"Every {int(hour[2:])} hours"

    if not (minute.isdigit() and hour.isdigit()):
        return expr
    at = f"{int(hour):02d}:{int(minute):02d}"
    if dow == "*":
        return f"Daily at {at}"
    if dow == "1-5":
        return f"Weekdays at {at}"
    if dow.isdigit() and 0 <= int(dow) <= 7:
        return f"Weekly ({_WEEKDAY_NAMES[int(dow) % 7]} {at})"
    return expr
