# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Calendar helpers, pure computation with no side effects.
"""

from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from fieldservice.core.config import settings
from fieldservice.models.domain import ServiceInstance, ServiceSchedule


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def local_now() -> datetime:
    return datetime.now(local_zone())


def day_of_week(day: date) -> int:
    """0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


def is_past_date(day: date, now: datetime) -> bool:
    return day < now.date()


def application_deadline(instance: ServiceInstance) -> datetime:
    """Service date minus ``deadline_day_offset`` days, at ``deadline_time``."""
    hours, minutes = (int(p) for p in instance.deadline_time.split(":"))
    deadline_day = instance.service_date() - timedelta(days=instance.deadline_day_offset)
    return datetime.combine(deadline_day, time(hours, minutes), tzinfo=local_zone())


def is_deadline_passed(instance: ServiceInstance, now: datetime) -> bool:
    return now >= application_deadline(instance)


def services_on(instances: Iterable[ServiceInstance], day: date) -> list[ServiceInstance]:
    key = day.isoformat()
    return sorted((s for s in instances if s.date == key), key=lambda s: s.time)


def creatable_schedules(
    schedules: Iterable[ServiceSchedule],
    instances: Iterable[ServiceInstance],
    day: date,
) -> list[ServiceSchedule]:
    """Templates for this weekday whose time+location is not yet on the day."""
    existing = {s.slot_key() for s in services_on(instances, day)}
    weekday = day_of_week(day)
    return sorted(
        (s for s in schedules if s.day_of_week == weekday and s.slot_key() not in existing),
        key=lambda s: s.time,
    )


def month_overview(
    instances: Iterable[ServiceInstance], year: int, month: int
) -> dict[str, int]:
    """Number of instances per ``YYYY-MM-DD`` within one month."""
    prefix = f"{year:04d}-{month:02d}-"
    counts = Counter(s.date for s in instances if s.date.startswith(prefix))
    return dict(sorted(counts.items()))
