import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from firebase_admin import auth as firebase_auth
from sqlmodel import Session

from core.firebase import verify_id_token
from db.session import get_session
from models.worker import Worker
from services.worker_service import WorkerService

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


# Verifies the bearer token with the identity provider and returns its claims
async def get_identity_claims(request: Request) -> dict:

    # 1) Extract & Analyze Authorization Header
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = auth_header.split(" ", 1)[1]

    # 2) Verify This Points to a Real User Account
    try:
        decoded = verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.info("[AUTH] Token rejected: %s", e)
        raise CREDENTIALS_EXCEPTION

    if not decoded.get("uid"):
        raise CREDENTIALS_EXCEPTION
    return decoded


# Authenticated worker; first request from a new uid syncs the profile
async def get_current_user(
    claims: Annotated[dict, Depends(get_identity_claims)],
    session: Annotated[Session, Depends(get_session)],
) -> Worker:
    return WorkerService(session).ensure_synced(claims)


# Manager Role Check Dependency
async def require_manager_role(
    current_user: Annotated[Worker, Depends(get_current_user)]
) -> Worker:
    if not current_user.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User doesn't have sufficient privileges for this action",
        )
    return current_user
