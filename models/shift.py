from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer
from sqlalchemy import DateTime, text
from sqlmodel import Field, Index, SQLModel

from utils.datetime_helpers import format_utc_datetime
from utils.geofence import Coordinate


# Names and values match so the stored enum label is the same string
# the partial index filters on
class ShiftStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# Defines a Table "shift": one worker's open-to-close attendance interval
class Shift(SQLModel, table=True):
    __tablename__ = "shift"

    __table_args__ = (
        # Shift history per worker, newest first
        Index("ix_shift_worker_id_clock_in_at", "worker_id", "clock_in_at"),
        # Roster queries filter by status
        Index("ix_shift_status_clock_in_at", "status", "clock_in_at"),
        # At most one ACTIVE row per worker
        Index(
            "uq_shift_active_worker",
            "worker_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    worker_id: str = Field(foreign_key="worker.id")
    site_id: str = Field(foreign_key="site.id")
    status: ShiftStatus = Field(default=ShiftStatus.ACTIVE)

    clock_in_at: datetime = Field(sa_type=DateTime(timezone=True))
    clock_in_lat: float
    clock_in_lng: float
    clock_in_note: Optional[str] = Field(default=None)

    clock_out_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    clock_out_lat: Optional[float] = Field(default=None)
    clock_out_lng: Optional[float] = Field(default=None)
    clock_out_note: Optional[str] = Field(default=None)
    duration_minutes: Optional[int] = Field(default=None)

    @property
    def clock_in_coordinate(self) -> Coordinate:
        return Coordinate(self.clock_in_lat, self.clock_in_lng)

    @property
    def clock_out_coordinate(self) -> Optional[Coordinate]:
        if self.clock_out_lat is None or self.clock_out_lng is None:
            return None
        return Coordinate(self.clock_out_lat, self.clock_out_lng)

    @property
    def is_active(self) -> bool:
        return self.status == ShiftStatus.ACTIVE


class ShiftRead(BaseModel):
    id: int
    worker_id: str
    site_id: str
    status: ShiftStatus
    clock_in_at: datetime
    clock_in_lat: float
    clock_in_lng: float
    clock_in_note: Optional[str] = None
    clock_out_at: Optional[datetime] = None
    clock_out_lat: Optional[float] = None
    clock_out_lng: Optional[float] = None
    clock_out_note: Optional[str] = None
    duration_minutes: Optional[int] = None

    @field_serializer("clock_in_at", "clock_out_at")
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)

    @classmethod
    def from_shift(cls, shift: Shift) -> "ShiftRead":
        return cls.model_validate(shift, from_attributes=True)
