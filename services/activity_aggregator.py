from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from core import config
from models.shift import Shift
from services.shift_ledger import ShiftLedger
from utils.datetime_helpers import ensure_utc, minutes_between
from utils.timezone_helpers import day_and_week_start, from_utc_to_local


@dataclass(frozen=True)
class RosterLine:
    shift: Shift
    duration_minutes: int


@dataclass(frozen=True)
class WorkerStats:
    worker_id: str
    clock_ins_today: int
    total_hours_this_week: float
    avg_hours_per_day: float


class ActivityAggregator:
    """Read-only projections over ledger state; "now" is always supplied by the caller."""

    def __init__(self, ledger: ShiftLedger):
        self.ledger = ledger

    def currently_active_count(self) -> int:
        return len(self.ledger.all_active())

    @staticmethod
    def active_duration_minutes(shift: Shift, now: datetime) -> int:
        if shift.duration_minutes is not None:
            return shift.duration_minutes
        return minutes_between(shift.clock_in_at, now)

    def completed_shifts_since(self, worker_id: str, since: datetime) -> List[Shift]:
        return self.ledger.completed_shifts_since(worker_id, ensure_utc(since))

    @staticmethod
    def total_minutes(shifts: Iterable[Shift]) -> int:
        # Open shifts have no duration yet and contribute nothing
        return sum(s.duration_minutes or 0 for s in shifts)

    def active_roster(self, now: datetime) -> List[RosterLine]:
        return [
            RosterLine(shift=s, duration_minutes=self.active_duration_minutes(s, now))
            for s in self.ledger.all_active()
        ]

    def worker_stats(
        self,
        worker_id: str,
        now: datetime,
        tz: str = config.REPORTING_TIMEZONE,
    ) -> WorkerStats:
        day_start, week_start = day_and_week_start(ensure_utc(now), tz)

        week_shifts = self.completed_shifts_since(worker_id, week_start)
        active = self.ledger.active_shift_for(worker_id)

        clock_ins_today = sum(1 for s in week_shifts if ensure_utc(s.clock_in_at) >= day_start)
        if active is not None and ensure_utc(active.clock_in_at) >= day_start:
            clock_ins_today += 1

        total_minutes = self.total_minutes(week_shifts)
        days_worked = {from_utc_to_local(s.clock_in_at, tz).date() for s in week_shifts}
        total_hours = total_minutes / 60.0
        avg_hours = total_hours / len(days_worked) if days_worked else 0.0

        return WorkerStats(
            worker_id=worker_id,
            clock_ins_today=clock_ins_today,
            total_hours_this_week=round(total_hours, 2),
            avg_hours_per_day=round(avg_hours, 2),
        )
