from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_serializer
from sqlmodel import Session, select

from api.time_routes import ShiftPage, page_of
from core import config
from core.deps import require_manager_role
from db.session import get_session
from models.shift import ShiftRead, ShiftStatus
from models.worker import Worker, WorkerRead
from services.activity_aggregator import ActivityAggregator
from services.shift_ledger import ShiftLedger
from utils.datetime_helpers import format_utc_datetime, utc_now
from utils.timezone_helpers import validate_timezone

router = APIRouter()


# --- Pydantic Models for Response ---


class RosterEntry(BaseModel):
    worker: Optional[WorkerRead]
    shift: ShiftRead
    clock_in_at: datetime
    duration_minutes: int

    @field_serializer("clock_in_at")
    def serialize_clock_in_at(self, dt: datetime) -> str:
        return format_utc_datetime(dt)


class WorkerStatsResponse(BaseModel):
    worker_id: str
    worker_name: str
    clock_ins_today: int
    total_hours_this_week: float
    avg_hours_per_day: float


class SortOrder(str, Enum):
    DESC = "desc"
    ASC = "asc"


def _workers_by_id(session: Session, worker_ids) -> dict:
    if not worker_ids:
        return {}
    workers = session.exec(select(Worker).where(Worker.id.in_(list(worker_ids)))).all()
    return {w.id: w for w in workers}


# --- API Endpoints ---


# Who is working right now, longest-running shift first
@router.get("/roster", response_model=List[RosterEntry])
def get_active_roster(
    session: Annotated[Session, Depends(get_session)],
    manager: Annotated[Worker, Depends(require_manager_role)],
):
    lines = ActivityAggregator(ShiftLedger(session)).active_roster(utc_now())
    workers = _workers_by_id(session, {line.shift.worker_id for line in lines})

    return [
        RosterEntry(
            worker=WorkerRead.model_validate(workers[line.shift.worker_id], from_attributes=True)
            if line.shift.worker_id in workers else None,
            shift=ShiftRead.from_shift(line.shift),
            clock_in_at=line.shift.clock_in_at,
            duration_minutes=line.duration_minutes,
        )
        for line in lines
    ]


# Shift logs across all workers, paginated
@router.get("/shifts", response_model=ShiftPage)
def get_shift_logs(
    session: Annotated[Session, Depends(get_session)],
    manager: Annotated[Worker, Depends(require_manager_role)],
    worker_id: Optional[str] = None,
    shift_status: Optional[ShiftStatus] = Query(default=None, alias="status"),
    order: SortOrder = SortOrder.DESC,
    limit: int = Query(default=config.HISTORY_DEFAULT_PAGE_SIZE, ge=1, le=config.HISTORY_MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
):
    items, total = ShiftLedger(session).history(
        worker_id=worker_id,
        status=shift_status,
        limit=limit,
        offset=offset,
        descending=order == SortOrder.DESC,
    )
    return page_of(items, total, limit, offset)


# Per-worker attendance figures computed from recorded shifts
@router.get("/stats", response_model=List[WorkerStatsResponse])
def get_dashboard_stats(
    session: Annotated[Session, Depends(get_session)],
    manager: Annotated[Worker, Depends(require_manager_role)],
    tz: str = config.REPORTING_TIMEZONE,
):
    if not validate_timezone(tz):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown timezone '{tz}'.",
        )

    aggregator = ActivityAggregator(ShiftLedger(session))
    now = utc_now()
    workers = session.exec(select(Worker).order_by(Worker.name, Worker.id)).all()

    results = []
    for worker in workers:
        stats = aggregator.worker_stats(worker.id, now, tz)
        results.append(
            WorkerStatsResponse(
                worker_id=worker.id,
                worker_name=worker.name,
                clock_ins_today=stats.clock_ins_today,
                total_hours_this_week=stats.total_hours_this_week,
                avg_hours_per_day=stats.avg_hours_per_day,
            )
        )
    return results
