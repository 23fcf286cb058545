import logging
from typing import Optional

from models.shift import Shift
from models.worker import Worker
from services.location_service import LocationAcquisitionService
from services.shift_ledger import ShiftLedger
from services.site_registry import SiteRegistry

logger = logging.getLogger(__name__)


class AttendanceService:
    """
    Sequences a clock-in/clock-out: acquire location, resolve the site, then
    mutate the ledger. Location acquisition finishes (or fails) before the
    ledger is touched, so a failed or timed-out acquisition never leaves a
    partial write. Domain errors propagate unchanged.
    """

    def __init__(
        self,
        ledger: ShiftLedger,
        locator: LocationAcquisitionService,
        sites: SiteRegistry,
    ):
        self.ledger = ledger
        self.locator = locator
        self.sites = sites

    async def clock_in(
        self,
        worker: Worker,
        note: Optional[str] = None,
        site_id: Optional[str] = None,
    ) -> Shift:
        coordinate = await self.locator.acquire()
        site = self.sites.resolve(site_id)
        logger.info("[ATTENDANCE] Clock-in for worker %s at site %s", worker.id, site.id)
        return self.ledger.open_shift(worker, site, coordinate, note)

    async def clock_out(self, worker: Worker, note: Optional[str] = None) -> Shift:
        coordinate = await self.locator.acquire()
        logger.info("[ATTENDANCE] Clock-out for worker %s", worker.id)
        return self.ledger.close_shift(worker, coordinate, note)
