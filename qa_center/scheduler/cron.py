"""Cron expression helpers: presets, human labels, validation and triggers.

Expressions use standard 5-field crontab syntax where day-of-week 0 and 7 are
Sunday. APScheduler numbers weekdays from Monday, so numeric day-of-week
fields are rewritten to weekday names before building a trigger.
"""
from typing import List, Optional, Tuple
from apscheduler.triggers.cron import CronTrigger


CRON_PRESETS: List[Tuple[str, str]] = [
    ("0 17 * * *", "Daily at 5:00 PM"),
    ("0 9 * * *", "Daily at 9:00 AM"),
    ("0 0 * * *", "Daily at midnight"),
    ("0 17 * * 1-5", "Weekdays at 5:00 PM"),
    ("0 17 * * 0,6", "Weekends at 5:00 PM"),
    ("0 */6 * * *", "Every 6 hours"),
    ("0 */12 * * *", "Every 12 hours"),
    ("0 0 * * 1", "Monday at midnight"),
    ("0 0 1 * *", "First day of month at midnight"),
]

CUSTOM_SCHEDULE = "Custom schedule"

_PRESET_LABELS = dict(CRON_PRESETS)
_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


class CronExpressionError(ValueError):
    """Expression is not a valid 5-field cron string."""


def _split(expression: str) -> List[str]:
    fields = (expression or "").split()
    if len(fields) != 5:
        raise CronExpressionError("Cron expression must have exactly 5 fields")
    return fields


def describe_cron(expression: Optional[str]) -> str:
    """Human label for a cron expression."""
    if not expression:
        return CUSTOM_SCHEDULE
    normalized = " ".join(expression.split())
    if normalized in _PRESET_LABELS:
        return _PRESET_LABELS[normalized]

    fields = normalized.split(" ")
    if len(fields) != 5:
        return CUSTOM_SCHEDULE
    minute, hour, day, month, day_of_week = fields
    if minute.isdigit() and hour.isdigit() and day == month == day_of_week == "*":
        return f"Daily at {hour.zfill(2)}:{minute.zfill(2)}"
    return CUSTOM_SCHEDULE


def _weekday_names(field: str) -> str:
    """Rewrite numeric crontab day-of-week terms (0/7 = Sunday) as names."""
    terms: List[str] = []
    for part in field.split(","):
        span, _, step = part.partition("/")
        start, _, stop = span.partition("-")
        if not start.isdigit() or (stop and not stop.isdigit()):
            terms.append(part)
            continue

        first = int(start)
        last = int(stop) if stop else (6 if step else first)
        increment = int(step) if step else 1
        if first > 7 or last > 7 or first > last or increment < 1:
            raise CronExpressionError(f"Invalid day-of-week term: {part}")
        for number in range(first, last + 1, increment):
            name = _WEEKDAYS[number % 7]
            if name not in terms:
                terms.append(name)
    return ",".join(terms)


def build_trigger(expression: str, timezone=None) -> CronTrigger:
    """Build an APScheduler trigger from a crontab expression."""
    minute, hour, day, month, day_of_week = _split(expression)
    try:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=_weekday_names(day_of_week),
            timezone=timezone,
        )
    except ValueError as e:
        raise CronExpressionError(str(e)) from e


def validate_cron(expression: Optional[str]) -> bool:
    """True when the expression is a 5-field cron string the scheduler accepts."""
    try:
        build_trigger(expression or "")
    except CronExpressionError:
        return False
    return True
