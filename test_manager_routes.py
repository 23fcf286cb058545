"""
Manager views: live roster, shift logs, dashboard stats.
"""

from datetime import timedelta

from conftest import FrozenClock
from services.shift_ledger import ShiftLedger
from utils.datetime_helpers import utc_now
from utils.geofence import Coordinate
from utils.timezone_helpers import day_and_week_start

CENTER = Coordinate(37.7749, -122.4194)


def test_roster_is_manager_only(client, login, worker):
    login(worker)

    assert client.get("/manager/roster").status_code == 403
    assert client.get("/manager/shifts").status_code == 403
    assert client.get("/manager/stats").status_code == 403


def test_roster_lists_active_shifts_oldest_first(client, login, session, site, worker, other_worker, manager):
    clock = FrozenClock(utc_now() - timedelta(hours=3))
    ledger = ShiftLedger(session, clock=clock)
    ledger.open_shift(other_worker, site, CENTER)
    clock.advance(hours=1)
    ledger.open_shift(worker, site, CENTER)
    clock.advance(hours=1)
    ledger.open_shift(manager, site, CENTER)
    ledger.close_shift(manager, CENTER)
    login(manager)

    roster = client.get("/manager/roster").json()

    assert [entry["worker"]["id"] for entry in roster] == [other_worker.id, worker.id]
    assert roster[0]["worker"]["name"] == "Omar Night"
    assert roster[0]["duration_minutes"] >= 180
    assert roster[1]["duration_minutes"] >= 120
    assert roster[0]["clock_in_at"].endswith("Z")
    assert roster[0]["shift"]["status"] == "ACTIVE"


def test_shift_logs_filter_and_page(client, login, session, site, worker, other_worker, manager, clock):
    ledger = ShiftLedger(session, clock=clock)
    for _ in range(3):
        ledger.open_shift(worker, site, CENTER)
        clock.advance(hours=8)
        ledger.close_shift(worker, CENTER)
        clock.advance(hours=16)
    ledger.open_shift(other_worker, site, CENTER)
    login(manager)

    page = client.get("/manager/shifts", params={"limit": 3}).json()
    assert page["total"] == 4
    assert page["next_offset"] == 3
    assert page["items"][0]["worker_id"] == other_worker.id

    last = client.get("/manager/shifts", params={"limit": 3, "offset": 3}).json()
    assert len(last["items"]) == 1
    assert last["next_offset"] is None

    mine = client.get("/manager/shifts", params={"worker_id": worker.id, "order": "asc"}).json()
    assert mine["total"] == 3
    stamps = [item["clock_in_at"] for item in mine["items"]]
    assert stamps == sorted(stamps)

    active = client.get("/manager/shifts", params={"status": "ACTIVE"}).json()
    assert [item["worker_id"] for item in active["items"]] == [other_worker.id]

    assert client.get("/manager/shifts", params={"limit": 0}).status_code == 422


def test_stats_cover_every_worker(client, login, session, site, worker, other_worker, manager):
    now = utc_now()
    today, _ = day_and_week_start(now, "UTC")
    clock = FrozenClock(today)
    ledger = ShiftLedger(session, clock=clock)
    ledger.open_shift(worker, site, CENTER)
    clock.set(now)
    ledger.close_shift(worker, CENTER)
    login(manager)

    response = client.get("/manager/stats", params={"tz": "UTC"})

    assert response.status_code == 200
    stats = {row["worker_id"]: row for row in response.json()}
    assert set(stats) == {worker.id, other_worker.id, manager.id}
    assert stats[worker.id]["worker_name"] == "Wendy Care"
    assert stats[worker.id]["clock_ins_today"] == 1
    assert stats[worker.id]["total_hours_this_week"] >= 0
    assert stats[other_worker.id]["clock_ins_today"] == 0
    assert stats[other_worker.id]["total_hours_this_week"] == 0


def test_stats_reject_unknown_timezone(client, login, manager):
    login(manager)

    response = client.get("/manager/stats", params={"tz": "Mars/Olympus_Mons"})

    assert response.status_code == 422
