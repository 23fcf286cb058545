from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from utils.geofence import Coordinate


# Work site w/ circular geofence
class Site(SQLModel, table=True):
    __tablename__ = "site"

    id: str = Field(primary_key=True, description="Unique site identifier")
    name: str = Field(description="Human-friendly site name")
    address: Optional[str] = Field(default=None)
    latitude: float = Field(..., description="Latitude of site center")
    longitude: float = Field(..., description="Longitude of site center")
    radius_meters: float = Field(..., description="Allowed clock-in radius in meters")
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)
