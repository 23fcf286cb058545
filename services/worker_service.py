import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from core import config
from models.worker import Worker, WorkerRole

logger = logging.getLogger(__name__)


def role_from_claims(claims: dict, manager_emails: Optional[Iterable[str]] = None) -> WorkerRole:
    """Map identity-provider claims onto an application role (default CAREWORKER)."""
    if manager_emails is None:
        manager_emails = config.MANAGER_EMAILS

    raw_roles = claims.get("roles") or claims.get("role") or []
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    roles = {str(r).strip().lower() for r in raw_roles}

    email = (claims.get("email") or "").strip().lower()
    if "manager" in roles or (email and email in set(manager_emails)):
        return WorkerRole.MANAGER
    return WorkerRole.CAREWORKER


class WorkerService:
    """
    Keeps the local Worker table in step with the identity provider.

    The row itself is the "already synced" marker: it is created once,
    inside a transaction, and later syncs only write when a field changed.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, worker_id: str) -> Optional[Worker]:
        return self.session.get(Worker, worker_id)

    def ensure_synced(self, claims: dict) -> Worker:
        worker = self.get(claims["uid"])
        if worker is not None:
            return worker
        worker, _ = self.sync_from_identity(claims)
        return worker

    def sync_from_identity(self, claims: dict) -> Tuple[Worker, bool]:
        """
        Create or refresh the worker described by ``claims``.

        Returns the worker and whether anything was written.
        """
        uid = claims["uid"]
        name = claims.get("name") or claims.get("nickname") or ""
        email = claims.get("email") or ""
        role = role_from_claims(claims)

        worker = self.get(uid)
        if worker is None:
            worker = Worker(id=uid, name=name, email=email, role=role)
            self.session.add(worker)
            try:
                self.session.commit()
            except IntegrityError:
                # Another request synced the same uid first
                self.session.rollback()
                existing = self.get(uid)
                if existing is None:
                    raise
                logger.info("[WORKERS] Worker %s was synced concurrently", uid)
                return existing, False
            self.session.refresh(worker)
            logger.info("[WORKERS] Synced new worker %s (%s)", uid, role.value)
            return worker, True

        changed = False
        for field, value in (("name", name), ("email", email), ("role", role)):
            if value and getattr(worker, field) != value:
                setattr(worker, field, value)
                changed = True

        if changed:
            worker.updated_at = datetime.now(timezone.utc)
            self.session.add(worker)
            self.session.commit()
            self.session.refresh(worker)
            logger.info("[WORKERS] Refreshed profile for worker %s", uid)

        return worker, changed
