from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from utils.datetime_helpers import format_utc_datetime


class WorkerRole(str, Enum):
    CAREWORKER = "CAREWORKER"
    MANAGER = "MANAGER"


# Mirror of the identity-provider user; id is the provider's uid
class Worker(SQLModel, table=True):
    __tablename__ = "worker"

    id: str = Field(primary_key=True, description="Identity provider uid")
    name: str = Field(default="", index=True)
    email: str = Field(default="", index=True)
    role: WorkerRole = Field(default=WorkerRole.CAREWORKER)
    # Set once, when the profile is first synced from the identity provider
    synced_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    @property
    def is_manager(self) -> bool:
        return self.role == WorkerRole.MANAGER


class WorkerRead(BaseModel):
    id: str
    name: str
    email: str
    role: WorkerRole
    synced_at: datetime

    @field_serializer("synced_at")
    def serialize_synced_at(self, dt: datetime) -> str:
        return format_utc_datetime(dt)
