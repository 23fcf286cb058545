from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from core import config
from core.deps import get_current_user
from db.session import get_session
from models.shift import ShiftRead
from models.worker import Worker
from services.attendance_service import AttendanceService
from services.location_service import (
    LocationAcquisitionService,
    LocationErrorCode,
    ReportedPositionSensor,
)
from services.shift_ledger import ShiftLedger
from services.site_registry import SiteRegistry

# --- Pydantic Models for Request Payloads ---


# What the device reports with a punch: a fix, or the reason it has none
class PunchRequest(BaseModel):
    worker_id: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    captured_at: Optional[datetime] = None
    location_error: Optional[LocationErrorCode] = None
    note: Optional[str] = Field(default=None, max_length=1000)


class ClockInRequest(PunchRequest):
    site_id: Optional[str] = None


class ShiftPage(BaseModel):
    items: List[ShiftRead]
    total: int
    limit: int
    offset: int
    next_offset: Optional[int] = None


def build_location_service(payload: PunchRequest) -> LocationAcquisitionService:
    sensor = ReportedPositionSensor(
        payload.latitude,
        payload.longitude,
        accuracy_meters=payload.accuracy,
        captured_at=payload.captured_at,
        error=payload.location_error,
    )
    return LocationAcquisitionService(sensor)


def build_attendance_service(session: Session, payload: PunchRequest) -> AttendanceService:
    return AttendanceService(
        ShiftLedger(session),
        build_location_service(payload),
        SiteRegistry(session),
    )


def _check_worker(payload: PunchRequest, user: Worker) -> None:
    if payload.worker_id is not None and payload.worker_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only clock in or out for yourself.",
        )


def page_of(items, total: int, limit: int, offset: int) -> ShiftPage:
    next_offset = offset + len(items)
    return ShiftPage(
        items=[ShiftRead.from_shift(s) for s in items],
        total=total,
        limit=limit,
        offset=offset,
        next_offset=next_offset if next_offset < total else None,
    )


# Defines API Endpoints
router = APIRouter()


# Clock In Endpoint
@router.post("/clock-in", response_model=ShiftRead, status_code=status.HTTP_201_CREATED)
async def clock_in(
    payload: ClockInRequest,
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
):
    _check_worker(payload, user)
    service = build_attendance_service(session, payload)
    shift = await service.clock_in(user, note=payload.note, site_id=payload.site_id)
    return ShiftRead.from_shift(shift)


# Clock Out Endpoint
@router.post("/clock-out", response_model=ShiftRead)
async def clock_out(
    payload: PunchRequest,
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
):
    _check_worker(payload, user)
    service = build_attendance_service(session, payload)
    shift = await service.clock_out(user, note=payload.note)
    return ShiftRead.from_shift(shift)


# Caller's open shift, null when clocked out
@router.get("/active", response_model=Optional[ShiftRead])
def get_active_shift(
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
):
    shift = ShiftLedger(session).active_shift_for(user.id)
    return ShiftRead.from_shift(shift) if shift else None


# Caller's shift history, newest first
@router.get("/shifts", response_model=ShiftPage)
def get_my_shifts(
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
    limit: int = Query(default=config.HISTORY_DEFAULT_PAGE_SIZE, ge=1, le=config.HISTORY_MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
):
    items, total = ShiftLedger(session).history(worker_id=user.id, limit=limit, offset=offset)
    return page_of(items, total, limit, offset)
