"""
Shift storage and the one-open-shift-per-worker rule.

Every write to a worker's shift state goes through ``open_shift`` or
``close_shift``. Both hold a per-worker lock around check-then-write, so
unrelated workers never wait on each other. Across processes the partial
unique index on ``shift(worker_id) WHERE status = 'ACTIVE'`` is the
serialization point for opening (losing that race surfaces as
ShiftAlreadyActive), and closing only updates a row that is still ACTIVE.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from core.errors import GeofenceViolation, NoActiveShift, ShiftAlreadyActive, SiteNotConfigured
from models.shift import Shift, ShiftStatus
from models.site import Site
from models.worker import Worker
from utils.datetime_helpers import ensure_utc, minutes_between, utc_now
from utils.geofence import Coordinate, explain

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
_worker_locks: Dict[str, threading.Lock] = {}


@contextmanager
def worker_lock(worker_id: str) -> Iterator[None]:
    with _registry_lock:
        lock = _worker_locks.setdefault(worker_id, threading.Lock())
    with lock:
        yield


def _ensure_admitted(point: Coordinate, site: Site) -> None:
    decision = explain(point, site)
    if not decision.admitted:
        raise GeofenceViolation(decision.distance_meters, decision.allowed_radius)


class ShiftLedger:
    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        self.session = session
        self.clock = clock

    # --- Writes ---

    def open_shift(
        self,
        worker: Worker,
        site: Site,
        coordinate: Coordinate,
        note: Optional[str] = None,
    ) -> Shift:
        _ensure_admitted(coordinate, site)

        with worker_lock(worker.id):
            if self.active_shift_for(worker.id) is not None:
                raise ShiftAlreadyActive()

            shift = Shift(
                worker_id=worker.id,
                site_id=site.id,
                status=ShiftStatus.ACTIVE,
                clock_in_at=self.clock(),
                clock_in_lat=coordinate.latitude,
                clock_in_lng=coordinate.longitude,
                clock_in_note=note,
            )
            self.session.add(shift)
            try:
                self.session.commit()
            except IntegrityError as e:
                # Another process opened a shift for this worker first
                self.session.rollback()
                logger.info("[LEDGER] Lost clock-in race for worker %s: %s", worker.id, e.orig)
                raise ShiftAlreadyActive() from e

            self.session.refresh(shift)

        logger.info("[LEDGER] Opened shift %s for worker %s at site %s", shift.id, worker.id, site.id)
        return shift

    def close_shift(
        self,
        worker: Worker,
        coordinate: Coordinate,
        note: Optional[str] = None,
    ) -> Shift:
        with worker_lock(worker.id):
            shift = self.active_shift_for(worker.id)
            if shift is None:
                raise NoActiveShift()

            # Clock-out is checked against the site the shift was opened at
            site = self.session.get(Site, shift.site_id)
            if site is None:
                raise SiteNotConfigured(f"Site '{shift.site_id}' for this shift no longer exists.")
            _ensure_admitted(coordinate, site)

            shift_id = shift.id
            clock_in_at = ensure_utc(shift.clock_in_at)
            clock_out_at = max(self.clock(), clock_in_at)

            # Only an ACTIVE row may flip; another process may have closed it already
            result = self.session.execute(
                update(Shift)
                .where(Shift.id == shift_id)
                .where(Shift.status == ShiftStatus.ACTIVE)
                .values(
                    clock_out_at=clock_out_at,
                    clock_out_lat=coordinate.latitude,
                    clock_out_lng=coordinate.longitude,
                    clock_out_note=note,
                    duration_minutes=minutes_between(clock_in_at, clock_out_at),
                    status=ShiftStatus.COMPLETED,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                logger.info("[LEDGER] Shift %s for worker %s was already closed", shift_id, worker.id)
                raise NoActiveShift()

            self.session.commit()
            shift = self.session.get(Shift, shift_id, populate_existing=True)

        logger.info(
            "[LEDGER] Closed shift %s for worker %s (%s min)",
            shift.id, worker.id, shift.duration_minutes,
        )
        return shift

    # --- Reads ---

    def active_shift_for(self, worker_id: str) -> Optional[Shift]:
        return self.session.exec(
            select(Shift)
            .where(Shift.worker_id == worker_id)
            .where(Shift.status == ShiftStatus.ACTIVE)
        ).first()

    def all_active(self) -> List[Shift]:
        """Currently open shifts, oldest clock-in first."""
        return list(
            self.session.exec(
                select(Shift)
                .where(Shift.status == ShiftStatus.ACTIVE)
                .order_by(Shift.clock_in_at.asc(), Shift.id.asc())
            ).all()
        )

    def completed_shifts_since(self, worker_id: str, since: datetime) -> List[Shift]:
        return list(
            self.session.exec(
                select(Shift)
                .where(Shift.worker_id == worker_id)
                .where(Shift.status == ShiftStatus.COMPLETED)
                .where(Shift.clock_in_at >= since)
                .order_by(Shift.clock_in_at.asc(), Shift.id.asc())
            ).all()
        )

    def history(
        self,
        worker_id: Optional[str] = None,
        status: Optional[ShiftStatus] = None,
        limit: int = 20,
        offset: int = 0,
        descending: bool = True,
    ) -> Tuple[Sequence[Shift], int]:
        """One page of shifts, stably ordered by clock-in time, plus the total count."""
        statement = select(Shift)
        count_statement = select(func.count()).select_from(Shift)
        if worker_id is not None:
            statement = statement.where(Shift.worker_id == worker_id)
            count_statement = count_statement.where(Shift.worker_id == worker_id)
        if status is not None:
            statement = statement.where(Shift.status == status)
            count_statement = count_statement.where(Shift.status == status)

        if descending:
            statement = statement.order_by(Shift.clock_in_at.desc(), Shift.id.desc())
        else:
            statement = statement.order_by(Shift.clock_in_at.asc(), Shift.id.asc())

        items = self.session.exec(statement.offset(offset).limit(limit)).all()
        total = self.session.exec(count_statement).one()
        return items, total
