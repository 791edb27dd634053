"""Cron-style scheduling of the health check.

Expressions follow the usual cron dialect: five crontab fields, an optional
``CRON_TZ=<zone>`` / ``TZ=<zone>`` prefix, the ``@hourly``-style descriptors and
``@every <duration>`` with Go-style durations (``500ms``, ``1m30s``, ``2h``).
APScheduler does the actual timekeeping.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "healthcheck"

# Ticks that fire while a run is still in flight queue on the runner lock.
MAX_QUEUED_TICKS = 3

DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_DOW_PART = re.compile(r"^(\*|\d+|[a-z]{3})(?:-(\d+|[a-z]{3}))?(?:/(\d+))?$")


class ScheduleExpressionError(ValueError):
    pass


def parse_duration(text: str) -> float:
    """Parse a Go-style duration string into seconds."""
    text = text.strip()
    if text == "0":
        return 0.0
    if not text:
        raise ValueError("empty duration")

    total = 0.0
    pos = 0
    while pos < len(text):
        m = _DURATION_PART.match(text, pos)
        if m is None:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return total


def every_seconds(duration: str) -> int:
    # Whole seconds only, never below one.
    return max(1, int(parse_duration(duration)))


def _weekday_index(token: str) -> int:
    if token.isdigit():
        return int(token)
    return _WEEKDAYS.index(token)


def _expand_day_of_week(field: str) -> str:
    """Rewrite crontab weekdays (0 or 7 = Sunday, or sun..sat) as names.

    APScheduler numbers weekdays from Monday, crontab from Sunday; names mean the
    same thing to both.
    """
    if field in ("*", "?"):
        return "*"

    days: set[int] = set()
    for part in field.lower().split(","):
        m = _DOW_PART.match(part)
        if m is None:
            raise ValueError(f"invalid day-of-week field: {field!r}")
        start_raw, end_raw, step_raw = m.groups()
        if start_raw == "*":
            if end_raw is not None:
                raise ValueError(f"invalid day-of-week field: {field!r}")
            start, end = 0, 6
        else:
            start = _weekday_index(start_raw)
            if end_raw is not None:
                end = _weekday_index(end_raw)
            elif step_raw is not None:
                end = 6
            else:
                end = start
        step = int(step_raw) if step_raw is not None else 1
        if start > 7 or end > 7 or start > end or step < 1:
            raise ValueError(f"invalid day-of-week field: {field!r}")
        days.update(day % 7 for day in range(start, end + 1, step))

    return ",".join(_WEEKDAYS[day] for day in sorted(days))


def _day_restricted(field: str) -> bool:
    # "*" and "?" fields, stepped or not, leave the day unrestricted.
    return not field.startswith(("*", "?"))


def _cron_trigger(crontab: str, tz: str | None) -> BaseTrigger:
    fields = crontab.split()
    if len(fields) != 5:
        raise ValueError(f"wrong number of fields; got {len(fields)}, expected 5")
    minute, hour, day, month, day_of_week = fields

    def build(dom_field: str, dow_field: str) -> CronTrigger:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=dom_field,
            month=month,
            day_of_week=dow_field,
            timezone=tz,
        )

    dom = "*" if day == "?" else day
    dow = _expand_day_of_week(day_of_week)

    # Crontab fires when either restricted day field matches; CronTrigger wants both.
    if _day_restricted(day) and _day_restricted(day_of_week):
        return OrTrigger([build(dom, "*"), build("*", dow)])
    return build(dom, dow)


def parse_schedule(expression: str) -> BaseTrigger:
    expr = expression.strip()
    tz: str | None = None

    try:
        if expr.startswith(("CRON_TZ=", "TZ=")):
            head, _, expr = expr.partition(" ")
            tz = head.split("=", 1)[1]
            expr = expr.strip()

        if not expr:
            raise ValueError("empty schedule")

        if expr.startswith("@every "):
            return IntervalTrigger(seconds=every_seconds(expr[len("@every "):]), timezone=tz)

        if expr.startswith("@"):
            crontab = DESCRIPTORS.get(expr)
            if crontab is None:
                raise ValueError(f"unrecognized descriptor: {expr}")
            return _cron_trigger(crontab, tz)

        return _cron_trigger(expr, tz)
    except (ValueError, LookupError) as exc:
        raise ScheduleExpressionError(
            f"Invalid schedule expression {expression!r}: {exc}"
        ) from exc


class CheckScheduler:
    """Fires ``func(*args)`` on the given schedule from a background thread."""

    def __init__(
        self,
        expression: str,
        func: Callable[..., Any],
        args: tuple[Any, ...] = (),
    ) -> None:
        self.expression = expression
        self.trigger = parse_schedule(expression)
        self._func = func
        self._args = args
        self._scheduler = BackgroundScheduler(daemon=True)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        if self._scheduler.running:
            return
        self._scheduler.add_job(
            self._func,
            self.trigger,
            args=self._args,
            id=JOB_ID,
            name=JOB_ID,
            max_instances=MAX_QUEUED_TICKS,
            coalesce=False,
            misfire_grace_time=None,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Health check scheduled with periodicity %s", self.expression)

    def stop(self) -> None:
        if not self._scheduler.running:
            return
        self._scheduler.shutdown(wait=False)
        logger.info("Health check scheduler stopped")
