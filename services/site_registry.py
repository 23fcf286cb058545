import logging
import threading
import time
from typing import List, Optional

from sqlmodel import Session, select

from core import config
from core.errors import SiteNotConfigured, SiteSelectionRequired
from models.site import Site

logger = logging.getLogger(__name__)

# Active sites change rarely; cache detached copies for a short while.
# Invalidation bumps the generation so a refresh that raced it is not stored.
_site_cache = {"data": None, "timestamp": 0.0, "generation": 0}
_site_cache_lock = threading.Lock()


def invalidate_site_cache() -> None:
    with _site_cache_lock:
        _site_cache["data"] = None
        _site_cache["timestamp"] = 0.0
        _site_cache["generation"] += 1


def _snapshot(site: Site) -> Site:
    return Site(**{name: getattr(site, name) for name in Site.model_fields})


def check_radius(radius_meters: float) -> None:
    """Raise ValueError when a radius falls outside the configured policy bounds."""
    if not (config.SITE_MIN_RADIUS_METERS <= radius_meters <= config.SITE_MAX_RADIUS_METERS):
        raise ValueError(
            f"Radius must be between {config.SITE_MIN_RADIUS_METERS:g} and "
            f"{config.SITE_MAX_RADIUS_METERS:g} meters."
        )


class SiteRegistry:
    def __init__(self, session: Session, ttl_seconds: float = config.SITE_CACHE_TTL_SECONDS):
        self.session = session
        self.ttl_seconds = ttl_seconds

    def active_sites(self) -> List[Site]:
        now = time.monotonic()
        with _site_cache_lock:
            cached = _site_cache["data"]
            if cached is not None and now - _site_cache["timestamp"] <= self.ttl_seconds:
                return list(cached)
            generation = _site_cache["generation"]

        sites = self.session.exec(
            select(Site).where(Site.is_active == True).order_by(Site.created_at, Site.id)  # noqa: E712
        ).all()
        snapshot = [_snapshot(site) for site in sites]

        with _site_cache_lock:
            if _site_cache["generation"] == generation:
                _site_cache["data"] = snapshot
                _site_cache["timestamp"] = now
        logger.debug("[SITES] Refreshed site cache (%d active)", len(snapshot))
        return list(snapshot)

    def resolve(self, site_id: Optional[str] = None) -> Site:
        """
        The site a clock-in is validated against.

        No active site -> SiteNotConfigured. With several active sites the
        caller must name one, otherwise SiteSelectionRequired.
        """
        sites = self.active_sites()
        if not sites:
            raise SiteNotConfigured()

        if site_id is not None:
            for site in sites:
                if site.id == site_id:
                    return site
            raise SiteNotConfigured(f"Site '{site_id}' is not configured for clock-in.")

        if len(sites) > 1:
            raise SiteSelectionRequired(site_ids=[s.id for s in sites])
        return sites[0]
