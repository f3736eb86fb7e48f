"""Second-resolution cron schedules, jobs and a background scheduler."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

EVERY_MINUTE_SPEC = "0 * * * * *"
EVERY_FIVE_MINUTES_SPEC = "0 */5 * * * *"
DAILY_SPEC = "0 0 0 * * *"

_RANGES = ((0, 59), (0, 59), (0, 23), (1, 31), (1, 12), (0, 6))
_SEARCH_YEARS = 5


def daily_at(hour: int, minute: int, second: int) -> str:
    """Spec that fires once a day at the given time."""
    return f"{second} {minute} {hour} * * *"


def _parse_field(text: str, low: int, high: int, is_dow: bool) -> tuple[frozenset[int], bool]:
    values: set[int] = set()
    star = False
    for part in text.split(","):
        base, _, step_text = part.partition("/")
        step = 1
        if step_text:
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"invalid step in {part!r}")
            step = int(step_text)
        if base in ("*", "?"):
            start, end = low, high
            star = star or not step_text
        elif "-" in base:
            a, _, b = base.partition("-")
            if not (a.isdigit() and b.isdigit()):
                raise ValueError(f"invalid range {part!r}")
            start, end = int(a), int(b)
        elif base.isdigit():
            start = int(base)
            end = high if step_text else start
        else:
            raise ValueError(f"invalid value {part!r}")
        if is_dow:
            start, end = (0 if start == 7 else start), (6 if end == 7 and start != 7 else end)
            if base.isdigit() and int(base) == 7 and not step_text:
                start = end = 0
        if start < low or end > high or start > end:
            raise ValueError(f"value out of range in {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values), star


@dataclass(frozen=True)
class CronSchedule:
    """Six-field cron schedule: second minute hour day-of-month month day-of-week."""

    seconds: frozenset[int]
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    days_star: bool
    weekdays_star: bool

    @classmethod
    def parse(cls, spec: str) -> CronSchedule:
        fields = spec.split()
        if len(fields) != 6:
            raise ValueError(f"expected 6 fields, got {len(fields)}: {spec!r}")
        parsed = [
            _parse_field(text, low, high, index == 5)
            for index, (text, (low, high)) in enumerate(zip(fields, _RANGES))
        ]
        return cls(
            seconds=parsed[0][0],
            minutes=parsed[1][0],
            hours=parsed[2][0],
            days=parsed[3][0],
            months=parsed[4][0],
            weekdays=parsed[5][0],
            days_star=parsed[3][1],
            weekdays_star=parsed[5][1],
        )

    def _day_matches(self, moment: datetime) -> bool:
        dom = moment.day in self.days
        dow = (moment.weekday() + 1) % 7 in self.weekdays
        if self.days_star or self.weekdays_star:
            return dom and dow
        return dom or dow

    def next_after(self, moment: datetime) -> datetime:
        """First matching time strictly after ``moment``."""
        t = moment.replace(microsecond=0) + timedelta(seconds=1)
        limit = moment.year + _SEARCH_YEARS
        while t.year <= limit:
            if t.month not in self.months:
                year, month = (t.year + 1, 1) if t.month == 12 else (t.year, t.month + 1)
                t = t.replace(year=year, month=month, day=1, hour=0, minute=0, second=0)
            elif not self._day_matches(t):
                t = t.replace(hour=0, minute=0, second=0) + timedelta(days=1)
            elif t.hour not in self.hours:
                t = t.replace(minute=0, second=0) + timedelta(hours=1)
            elif t.minute not in self.minutes:
                t = t.replace(second=0) + timedelta(minutes=1)
            elif t.second not in self.seconds:
                t += timedelta(seconds=1)
            else:
                return t
        raise ValueError("schedule never fires")


class Job(Protocol):
    name: str
    spec: str
    description: str

    def run(self) -> None: ...


@dataclass
class BaseJob:
    """A named job; runs ``action`` when given."""

    name: str
    spec: str
    description: str = ""
    action: Callable[[], None] | None = None

    def run(self) -> None:
        if self.action is not None:
            self.action()


class HelloJob(BaseJob):
    """Logs a greeting every minute."""

    def __init__(self) -> None:
        super().__init__(name="HelloJob", spec=EVERY_MINUTE_SPEC, description="Hello Job")

    def run(self) -> None:
        logger.info("Hello Job Run")


@dataclass
class _Entry:
    job: Job
    schedule: CronSchedule
    next_run: datetime | None = None


@dataclass
class CronServer:
    """Runs registered jobs on their schedules in a background thread."""

    entries: list[_Entry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def jobs(self) -> list[Job]:
        return [entry.job for entry in self.entries]

    def add_job(self, job: Job) -> None:
        """Register a job; raises ValueError for an invalid spec."""
        try:
            schedule = CronSchedule.parse(job.spec)
        except ValueError as exc:
            raise ValueError(f"[Cron] 注册任务 {job.name} 失败: {exc}") from exc
        entry = _Entry(job, schedule)
        with self._lock:
            if self._thread is not None:
                entry.next_run = schedule.next_after(datetime.now())
            self.entries.append(entry)
        logger.info("[Cron] 已注册任务: [%s] 频率: [%s] 描述: %s", job.name, job.spec, job.description)

    def run_job(self, job: Job) -> bool:
        """Run a job, logging instead of propagating failures; True on success."""
        start = time.monotonic()
        try:
            job.run()
        except Exception:
            logger.exception("[Cron] 任务 %s 发生 Panic", job.name)
            return False
        logger.info("[Cron] 任务 %s 执行完成, 耗时: %.3fs", job.name, time.monotonic() - start)
        return True

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            now = datetime.now()
            for entry in self.entries:
                entry.next_run = entry.schedule.next_after(now)
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name="cron", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join()

    def _loop(self) -> None:
        while not self._stop.is_set():
            now = datetime.now()
            with self._lock:
                due = [e for e in self.entries if e.next_run is not None and e.next_run <= now]
                for entry in due:
                    entry.next_run = entry.schedule.next_after(now)
                upcoming = [e.next_run for e in self.entries if e.next_run is not None]
            for entry in due:
                threading.Thread(target=self.run_job, args=(entry.job,), daemon=True).start()
            wait = 1.0
            if upcoming:
                wait = min(wait, max(0.0, (min(upcoming) - datetime.now()).total_seconds()))
            self._stop.wait(wait)


def new_cron_server(hello: HelloJob) -> CronServer:
    """A scheduler with the built-in jobs registered."""
    server = CronServer()
    server.add_job(hello)
    return server