"""
AttendanceService end to end against a real (SQLite) ledger.
"""

import asyncio

import pytest
from sqlmodel import Session, select

from core.errors import (
    GeofenceViolation,
    LocationUnavailable,
    PermissionDenied,
    ShiftAlreadyActive,
    SiteNotConfigured,
    SiteSelectionRequired,
)
from models.shift import Shift, ShiftStatus
from services.attendance_service import AttendanceService
from services.location_service import (
    LocationAcquisitionService,
    LocationErrorCode,
    ReportedPositionSensor,
)
from services.shift_ledger import ShiftLedger
from services.site_registry import SiteRegistry
from utils.geofence import distance_meters, Coordinate

CENTER = (37.7749, -122.4194)
FAR = (37.8200, -122.4785)
NEARBY = (37.7755, -122.4200)


def service_at(session, clock, lat=None, lng=None, error=None):
    sensor = ReportedPositionSensor(lat, lng, error=error, clock=clock)
    return AttendanceService(
        ShiftLedger(session, clock=clock),
        LocationAcquisitionService(sensor, clock=clock),
        SiteRegistry(session),
    )


def all_shifts(session):
    return session.exec(select(Shift)).all()


def test_clock_in_clock_out_scenario(session, site, worker, clock):
    shift = asyncio.run(service_at(session, clock, *CENTER).clock_in(worker, note="Morning"))
    assert shift.status == ShiftStatus.ACTIVE
    assert shift.clock_in_note == "Morning"

    with pytest.raises(ShiftAlreadyActive):
        asyncio.run(service_at(session, clock, *CENTER).clock_in(worker))

    clock.advance(hours=8)
    with pytest.raises(GeofenceViolation) as exc_info:
        asyncio.run(service_at(session, clock, *FAR).clock_out(worker))
    assert exc_info.value.allowed_radius == 2000
    assert exc_info.value.distance == pytest.approx(
        distance_meters(Coordinate(*FAR), Coordinate(*CENTER)), rel=1e-6
    )
    assert exc_info.value.distance > 5000

    closed = asyncio.run(service_at(session, clock, *NEARBY).clock_out(worker, note="Handover done"))
    assert closed.status == ShiftStatus.COMPLETED
    assert closed.duration_minutes == 480
    assert closed.clock_out_note == "Handover done"


def test_location_failure_leaves_ledger_untouched(session, site, worker, clock):
    with pytest.raises(LocationUnavailable):
        asyncio.run(service_at(session, clock).clock_in(worker))

    with pytest.raises(PermissionDenied):
        asyncio.run(service_at(session, clock, error=LocationErrorCode.PERMISSION_DENIED).clock_in(worker))

    assert all_shifts(session) == []


def test_clock_out_location_failure_keeps_shift_open(session, site, worker, clock):
    asyncio.run(service_at(session, clock, *CENTER).clock_in(worker))

    with pytest.raises(LocationUnavailable):
        asyncio.run(service_at(session, clock, error=LocationErrorCode.TIMEOUT).clock_out(worker))

    assert ShiftLedger(session).active_shift_for(worker.id) is not None


def test_no_site_configured(session, worker, clock):
    with pytest.raises(SiteNotConfigured):
        asyncio.run(service_at(session, clock, *CENTER).clock_in(worker))
    assert all_shifts(session) == []


def test_inactive_site_does_not_count(session, worker, clock, make_site):
    make_site("OLD", is_active=False)

    with pytest.raises(SiteNotConfigured):
        asyncio.run(service_at(session, clock, *CENTER).clock_in(worker))


def test_multiple_sites_need_a_selection(session, worker, clock, make_site):
    make_site("MAIN")
    make_site("OAK", lat=37.8044, lng=-122.2712)

    with pytest.raises(SiteSelectionRequired) as exc_info:
        asyncio.run(service_at(session, clock, *CENTER).clock_in(worker))
    assert sorted(exc_info.value.payload["site_ids"]) == ["MAIN", "OAK"]

    shift = asyncio.run(service_at(session, clock, *CENTER).clock_in(worker, site_id="MAIN"))
    assert shift.site_id == "MAIN"


def test_unknown_site_selection(session, site, worker, clock):
    with pytest.raises(SiteNotConfigured):
        asyncio.run(service_at(session, clock, *CENTER).clock_in(worker, site_id="NOPE"))


def test_simultaneous_clock_ins_admit_one(engine, site, worker, clock):
    async def both():
        with Session(engine) as first, Session(engine) as second:
            return await asyncio.gather(
                service_at(first, clock, *CENTER).clock_in(worker),
                service_at(second, clock, *NEARBY).clock_in(worker),
                return_exceptions=True,
            )

    results = asyncio.run(both())

    assert sum(isinstance(r, Shift) for r in results) == 1
    assert sum(isinstance(r, ShiftAlreadyActive) for r in results) == 1
