"""
Periodic job triggers.

Each trigger is registered once as a ``scheduled_triggers`` row. On every
tick the most recent due fire time is enqueued on the scheduled-jobs queue
with the id ``<name>:<fire time>``, so several schedulers ticking at once
still enqueue a firing only once.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from sentinel.config import settings
from sentinel.db.connection import background_session
from sentinel.models.db import ScheduledTrigger
from sentinel.queue.job_queue import SCHEDULED, JobQueue
from sentinel.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

STEP = timedelta(minutes=15)
LOOKBACK = timedelta(days=8)


@dataclass(frozen=True)
class Schedule:
    """
    Wall-clock schedule in the reporting timezone.

    ``weekdays`` uses Monday=0 .. Sunday=6; empty means every day.
    """

    name: str
    hours: frozenset[int]
    minute: int = 0
    weekdays: frozenset[int] = field(default_factory=frozenset)

    def matches(self, local: datetime) -> bool:
        if local.minute != self.minute or local.hour not in self.hours:
            return False
        return not self.weekdays or local.weekday() in self.weekdays


SCHEDULES = [
    Schedule("compute-metrics-daily", hours=frozenset({2})),
    Schedule("track-survival-weekly", hours=frozenset({3}), weekdays=frozenset({6})),
    Schedule(
        "monitor-saturation-hourly",
        hours=frozenset(range(9, 19)),
        weekdays=frozenset(range(0, 5)),
    ),
]


def most_recent_fire(
    schedule: Schedule, now: datetime, tz_name: str
) -> Optional[datetime]:
    """
    Latest instant at or before ``now`` matching the schedule.

    Returns:
        Aware UTC datetime, or None if nothing matched within the lookback
    """
    tz = ZoneInfo(tz_name)
    now = ensure_utc(now)
    candidate = now.replace(minute=now.minute - now.minute % 15, second=0, microsecond=0)
    earliest = now - LOOKBACK
    while candidate >= earliest:
        if schedule.matches(candidate.astimezone(tz)):
            return candidate
        candidate -= STEP
    return None


def register_schedules(
    session: Session, now: Optional[datetime] = None, schedules: list[Schedule] = SCHEDULES
) -> tuple[int, int]:
    """
    Register periodic triggers. Already-registered names are left alone.

    New triggers start counting from ``now`` so registration never causes a
    catch-up firing.

    Returns:
        (registered, skipped)
    """
    now = now or utcnow()
    registered = 0
    skipped = 0

    for schedule in schedules:
        if session.get(ScheduledTrigger, schedule.name):
            logger.debug(f"Trigger {schedule.name} already registered")
            skipped += 1
            continue
        try:
            with session.begin_nested():
                session.add(
                    ScheduledTrigger(
                        name=schedule.name,
                        queue=SCHEDULED,
                        last_fired_at=now,
                        registered_at=now,
                    )
                )
            registered += 1
        except IntegrityError:
            skipped += 1

    session.commit()
    logger.info(f"Periodic triggers initialized: registered={registered}, skipped={skipped}")
    return registered, skipped


def tick(
    session: Session,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
    schedules: list[Schedule] = SCHEDULES,
) -> list[str]:
    """
    Enqueue every registered trigger that has come due since it last fired.

    Missed firings collapse into the most recent one.

    Returns:
        Ids of jobs enqueued on this tick
    """
    now = now or utcnow()
    tz_name = tz_name or settings.reporting_timezone
    queue = JobQueue(session)
    enqueued = []

    for schedule in schedules:
        trigger = session.get(ScheduledTrigger, schedule.name)
        if trigger is None:
            continue

        fire = most_recent_fire(schedule, now, tz_name)
        if fire is None:
            continue
        if trigger.last_fired_at and fire <= ensure_utc(trigger.last_fired_at):
            continue

        job_id = f"{schedule.name}:{fire.isoformat()}"
        queue.enqueue(SCHEDULED, schedule.name, {}, job_id=job_id)
        trigger.last_fired_at = fire
        enqueued.append(job_id)
        logger.info(f"Fired trigger {schedule.name} for {fire.isoformat()}")

    session.commit()
    return enqueued


class Scheduler:
    """Background thread that ticks the periodic triggers."""

    def __init__(self, interval: Optional[float] = None):
        self.interval = interval if interval is not None else settings.scheduler_tick_interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run(self) -> None:
        registered = False
        while not self._stop_event.is_set():
            try:
                with background_session() as session:
                    if not registered:
                        register_schedules(session)
                        registered = True
                    tick(session)
            except OperationalError as e:
                logger.warning(f"Scheduler DB unavailable: {e}")
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)
            self._stop_event.wait(self.interval)

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, daemon=True, name="scheduler")
        self._thread.start()
        logger.info("Started scheduler")

    def stop(self, timeout: float = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None
