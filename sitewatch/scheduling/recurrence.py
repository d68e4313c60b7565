"""
Recurrence rules for scheduled audits and monitoring checks.

Everything here is pure: callers pass the current time in and get naive
UTC datetimes back. Wall-clock times (``time_of_day``) are interpreted in
the schedule's own IANA timezone, so a 09:00 Europe/Berlin schedule keeps
running at 09:00 local time across DST changes.
"""
import calendar
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sitewatch.db.enums import MonitoringFrequency, ScheduleFrequency
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.exceptions import ScheduleValidationError
from sitewatch.utils.dates import to_naive_utc

TIME_OF_DAY_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")

# Defaults applied when a weekly/monthly rule omits its anchor day
DEFAULT_DAY_OF_WEEK = 0  # Monday
DEFAULT_DAY_OF_MONTH = 1


@dataclass(frozen=True)
class ScheduleRule:
    """The parts of a schedule that determine when it runs."""

    frequency: ScheduleFrequency
    time_of_day: str = "09:00"
    timezone: str = "UTC"
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    has_run: bool = False

    @classmethod
    def from_schedule(cls, schedule) -> "ScheduleRule":
        """Build a rule from an ``AuditSchedule`` row."""
        return cls(
            frequency=ScheduleFrequency(schedule.frequency),
            time_of_day=schedule.time_of_day or "09:00",
            timezone=schedule.timezone or "UTC",
            day_of_week=schedule.day_of_week,
            day_of_month=schedule.day_of_month,
            scheduled_at=schedule.scheduled_at,
            has_run=bool(schedule.run_count) or schedule.last_run_at is not None,
        )


class MonitoringInterval(NamedTuple):
    """Step between monitoring checks: a fixed delta or a number of months."""

    delta: timedelta
    months: int


MONITORING_INTERVALS = {
    MonitoringFrequency.HOURLY: MonitoringInterval(timedelta(hours=1), 0),
    MonitoringFrequency.DAILY: MonitoringInterval(timedelta(days=1), 0),
    MonitoringFrequency.WEEKLY: MonitoringInterval(timedelta(days=7), 0),
    MonitoringFrequency.BIWEEKLY: MonitoringInterval(timedelta(days=14), 0),
    MonitoringFrequency.MONTHLY: MonitoringInterval(timedelta(0), 1),
    MonitoringFrequency.QUARTERLY: MonitoringInterval(timedelta(0), 3),
}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS``; raises ScheduleValidationError."""
    match = TIME_OF_DAY_PATTERN.match((value or "").strip())
    if not match:
        raise ScheduleValidationError(
            ErrorCodeDictionary.SCHEDULE_001, context={"time_of_day": value}
        )
    hour, minute, second = match.groups()
    return time(int(hour), int(minute), int(second or 0))


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name; raises ScheduleValidationError."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise ScheduleValidationError(
            ErrorCodeDictionary.SCHEDULE_002, context={"timezone": name}
        )


def validate_rule(rule: ScheduleRule) -> None:
    """Check every field of a rule, raising on the first problem."""
    parse_time_of_day(rule.time_of_day)
    get_zone(rule.timezone)
    if rule.day_of_week is not None and not 0 <= rule.day_of_week <= 6:
        raise ScheduleValidationError(
            ErrorCodeDictionary.SCHEDULE_003, context={"day_of_week": rule.day_of_week}
        )
    if rule.day_of_month is not None and not 1 <= rule.day_of_month <= 31:
        raise ScheduleValidationError(
            ErrorCodeDictionary.SCHEDULE_004, context={"day_of_month": rule.day_of_month}
        )
    if rule.frequency == ScheduleFrequency.ONE_TIME and rule.scheduled_at is None:
        raise ScheduleValidationError(ErrorCodeDictionary.SCHEDULE_005)


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def add_months(year: int, month: int, months: int):
    """Return (year, month) shifted by ``months``."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp ``day`` to the length of the given month."""
    return min(day, calendar.monthrange(year, month)[1])


def _local_to_utc(day: date, at: time, zone: ZoneInfo) -> datetime:
    local = datetime.combine(day, at).replace(tzinfo=zone)
    return local.astimezone(dt_timezone.utc).replace(tzinfo=None)


def _utc_to_local(value: datetime, zone: ZoneInfo) -> datetime:
    return value.replace(tzinfo=dt_timezone.utc).astimezone(zone)


# ---------------------------------------------------------------------------
# Next-run computation
# ---------------------------------------------------------------------------

def _next_daily(after: datetime, at: time, zone: ZoneInfo) -> datetime:
    local_day = _utc_to_local(after, zone).date()
    candidate = _local_to_utc(local_day, at, zone)
    if candidate <= after:
        candidate = _local_to_utc(local_day + timedelta(days=1), at, zone)
    return candidate


def _next_weekly(after: datetime, at: time, zone: ZoneInfo, day_of_week: int) -> datetime:
    local_day = _utc_to_local(after, zone).date()
    target = local_day + timedelta(days=(day_of_week - local_day.weekday()) % 7)
    candidate = _local_to_utc(target, at, zone)
    if candidate <= after:
        candidate = _local_to_utc(target + timedelta(days=7), at, zone)
    return candidate


def _next_monthly(after: datetime, at: time, zone: ZoneInfo, day_of_month: int) -> datetime:
    local = _utc_to_local(after, zone)
    year, month = local.year, local.month
    candidate = _local_to_utc(date(year, month, clamp_day(year, month, day_of_month)), at, zone)
    if candidate <= after:
        year, month = add_months(year, month, 1)
        candidate = _local_to_utc(date(year, month, clamp_day(year, month, day_of_month)), at, zone)
    return candidate


def _shift_months(value: datetime, months: int, at: time, zone: ZoneInfo, day_of_month: int) -> datetime:
    local = _utc_to_local(value, zone)
    year, month = add_months(local.year, local.month, months)
    return _local_to_utc(date(year, month, clamp_day(year, month, day_of_month)), at, zone)


def compute_next_run(rule: ScheduleRule, after: datetime) -> Optional[datetime]:
    """
    Next run of ``rule`` strictly after ``after``.

    Biweekly and quarterly rules that have already run skip one extra
    period past the first matching occurrence, so consecutive runs are two
    weeks or three months apart.

    Returns:
        Naive UTC datetime, or None for a one-time rule that has fired
    """
    after = to_naive_utc(after)
    frequency = ScheduleFrequency(rule.frequency)

    if frequency == ScheduleFrequency.ONE_TIME:
        scheduled_at = to_naive_utc(rule.scheduled_at)
        if rule.has_run or scheduled_at is None or scheduled_at <= after:
            return None
        return scheduled_at

    at = parse_time_of_day(rule.time_of_day)
    zone = get_zone(rule.timezone)

    if frequency == ScheduleFrequency.DAILY:
        return _next_daily(after, at, zone)

    if frequency in (ScheduleFrequency.WEEKLY, ScheduleFrequency.BIWEEKLY):
        day_of_week = DEFAULT_DAY_OF_WEEK if rule.day_of_week is None else rule.day_of_week
        candidate = _next_weekly(after, at, zone, day_of_week)
        if frequency == ScheduleFrequency.BIWEEKLY and rule.has_run:
            candidate = _local_to_utc(
                _utc_to_local(candidate, zone).date() + timedelta(days=7), at, zone
            )
        return candidate

    day_of_month = rule.day_of_month or DEFAULT_DAY_OF_MONTH
    candidate = _next_monthly(after, at, zone, day_of_month)
    if frequency == ScheduleFrequency.QUARTERLY and rule.has_run:
        candidate = _shift_months(candidate, 2, at, zone, day_of_month)
    return candidate


def compute_initial_run(rule: ScheduleRule, now: datetime) -> Optional[datetime]:
    """First ``next_run_at`` for a newly created or re-enabled schedule."""
    validate_rule(rule)
    return compute_next_run(replace(rule, has_run=False), now)


def advance_past(rule: ScheduleRule, next_run_at: Optional[datetime], now: datetime) -> Optional[datetime]:
    """
    Advance a schedule after it fired.

    Missed occurrences collapse into one: the result is the first slot on
    the cadence of the run that just fired that is strictly after both
    ``now`` and that run. A biweekly run that fired ten days late moves to
    two weeks after its own slot, not to the week after ``now``.
    """
    now = to_naive_utc(now)
    fired = replace(rule, has_run=True)
    if next_run_at is None:
        return compute_next_run(fired, now)

    candidate = compute_next_run(fired, next_run_at)
    while candidate is not None and candidate <= now:
        candidate = compute_next_run(fired, candidate)
    return candidate


# ---------------------------------------------------------------------------
# Monitoring
# ---------------------------------------------------------------------------

def interval_for_monitoring(frequency) -> MonitoringInterval:
    """Step between monitoring checks for the given frequency."""
    return MONITORING_INTERVALS[MonitoringFrequency(frequency)]


def next_monitoring_check(frequency, after: datetime) -> datetime:
    """Time of the next monitoring check after ``after`` (naive UTC)."""
    after = to_naive_utc(after)
    interval = interval_for_monitoring(frequency)
    if interval.months:
        year, month = add_months(after.year, after.month, interval.months)
        return after.replace(
            year=year, month=month, day=clamp_day(year, month, after.day)
        )
    return after + interval.delta
