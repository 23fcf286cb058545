from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from core.deps import get_current_user, get_identity_claims
from db.session import get_session
from models.shift import ShiftRead
from models.worker import Worker, WorkerRead
from services.shift_ledger import ShiftLedger
from services.worker_service import WorkerService

router = APIRouter()


class SyncResponse(BaseModel):
    worker: WorkerRead
    updated: bool


class ProfileResponse(BaseModel):
    worker: WorkerRead
    active_shift: Optional[ShiftRead] = None


# Idempotent: repeat calls only write when the identity profile changed
@router.post("/sync", response_model=SyncResponse)
def sync_worker(
    claims: Annotated[dict, Depends(get_identity_claims)],
    session: Annotated[Session, Depends(get_session)],
):
    worker, updated = WorkerService(session).sync_from_identity(claims)
    return SyncResponse(worker=WorkerRead.model_validate(worker, from_attributes=True), updated=updated)


@router.get("/me", response_model=ProfileResponse)
def get_me(
    session: Annotated[Session, Depends(get_session)],
    user: Annotated[Worker, Depends(get_current_user)],
):
    shift = ShiftLedger(session).active_shift_for(user.id)
    return ProfileResponse(
        worker=WorkerRead.model_validate(user, from_attributes=True),
        active_shift=ShiftRead.from_shift(shift) if shift else None,
    )
