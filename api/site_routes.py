import logging
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field as PydanticField
from sqlmodel import Session, select

from core import config
from core.deps import get_current_user, require_manager_role
from db.session import get_session
from models.site import Site
from models.worker import Worker
from services.site_registry import SiteRegistry, check_radius, invalidate_site_cache

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Data Models ---


# Public shape of the clock-in boundary
class SiteConfigResponse(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    latitude: float
    longitude: float
    radius: float
    is_active: bool = True

    @classmethod
    def from_site(cls, site: Site) -> "SiteConfigResponse":
        return cls(
            id=site.id,
            name=site.name,
            address=site.address,
            latitude=site.latitude,
            longitude=site.longitude,
            radius=site.radius_meters,
            is_active=site.is_active,
        )


class SiteCreate(BaseModel):
    id: str = PydanticField(..., min_length=1, description="Unique site identifier")
    name: str = PydanticField(..., min_length=1)
    address: Optional[str] = None
    latitude: float = PydanticField(ge=-90, le=90)
    longitude: float = PydanticField(ge=-180, le=180)
    radius: float = PydanticField(default=config.DEFAULT_SITE_RADIUS_METERS, gt=0)


# All fields optional; only the ones sent are changed
class SiteUpdate(BaseModel):
    name: Optional[str] = PydanticField(default=None, min_length=1)
    address: Optional[str] = None
    latitude: Optional[float] = PydanticField(default=None, ge=-90, le=90)
    longitude: Optional[float] = PydanticField(default=None, ge=-180, le=180)
    radius: Optional[float] = PydanticField(default=None, gt=0)
    is_active: Optional[bool] = None


def _validate_radius(radius: float) -> None:
    try:
        check_radius(radius)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


# --- API Endpoints ---


# The site clock-ins are currently validated against
@router.get("/current", response_model=SiteConfigResponse)
def get_current_site(
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
    site_id: Optional[str] = None,
):
    return SiteConfigResponse.from_site(SiteRegistry(session).resolve(site_id))


@router.get("", response_model=List[SiteConfigResponse])
def list_sites(
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
):
    sites = session.exec(select(Site).order_by(Site.created_at, Site.id)).all()
    return [SiteConfigResponse.from_site(s) for s in sites]


@router.post("", response_model=SiteConfigResponse, status_code=status.HTTP_201_CREATED)
def create_site(
    site_in: SiteCreate,
    session: Annotated[Session, Depends(get_session)],
    manager: Annotated[Worker, Depends(require_manager_role)],
):
    _validate_radius(site_in.radius)

    if session.get(Site, site_in.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Site with ID '{site_in.id}' already exists.",
        )

    site = Site(
        id=site_in.id,
        name=site_in.name,
        address=site_in.address,
        latitude=site_in.latitude,
        longitude=site_in.longitude,
        radius_meters=site_in.radius,
    )
    session.add(site)
    session.commit()
    session.refresh(site)
    invalidate_site_cache()

    logger.info("[SITES] Manager %s created site %s", manager.id, site.id)
    return SiteConfigResponse.from_site(site)


@router.patch("/{site_id}", response_model=SiteConfigResponse)
def update_site(
    site_id: str,
    site_in: SiteUpdate,
    session: Annotated[Session, Depends(get_session)],
    manager: Annotated[Worker, Depends(require_manager_role)],
):
    site = session.get(Site, site_id)
    if not site:
        raise HTTPException(status_code=404, detail=f"Site with ID {site_id} not found.")

    updates = site_in.model_dump(exclude_unset=True)
    # An explicit null leaves the radius unchanged, like every other field
    radius = updates.pop("radius", None)
    if radius is not None:
        _validate_radius(radius)
        updates["radius_meters"] = radius

    for field, value in updates.items():
        if value is not None:
            setattr(site, field, value)
    site.updated_at = datetime.now(timezone.utc)

    session.add(site)
    session.commit()
    session.refresh(site)
    invalidate_site_cache()

    logger.info("[SITES] Manager %s updated site %s: %s", manager.id, site.id, sorted(updates))
    return SiteConfigResponse.from_site(site)
