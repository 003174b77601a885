"""API routes for card verification, the access log and permission grants."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from access_control.database import get_db, get_session_factory
from access_control.models.enums import AccessStatus
from access_control.rate_limit import api_limit, verify_limit
from access_control.services import access_log
from access_control.services.access_log import AccessLogSink
from access_control.services.permissions import PermissionGrantError, PermissionService
from access_control.services.resolvers import SqlAccessStore
from access_control.services.verification import AccessVerifier
from access_control.api.schemas import (
    AccessLogPage,
    AccessLogResponse,
    AccessStatsResponse,
    ErrorResponse,
    PermissionGrant,
    PermissionResponse,
    VerifyAccessRequest,
    VerifyAccessResponse,
)

router = APIRouter()


def get_log_sink(session_factory=Depends(get_session_factory)) -> AccessLogSink:
    return AccessLogSink(session_factory)


def get_verifier(
    db: Session = Depends(get_db),
    log_sink: AccessLogSink = Depends(get_log_sink)
) -> AccessVerifier:
    return AccessVerifier(SqlAccessStore(db), log_sink)


# Verification endpoint
@router.post("/access/verify", response_model=VerifyAccessResponse, response_model_exclude_none=True)
@verify_limit
def verify_access(
    request: Request,
    verify_data: VerifyAccessRequest,
    verifier: AccessVerifier = Depends(get_verifier)
):
    """
    Verify whether a card can open a door.

    Called by unattended card readers: no authentication, and always HTTP 200.
    GRANTED/DENIED is carried in the body.
    """
    result = verifier.verify(verify_data.card_uid, verify_data.door_id)
    return result.to_dict()


# Access log endpoints
@router.get("/access/logs", response_model=AccessLogPage)
@api_limit
def get_access_logs(
    request: Request,
    card_uid: Optional[str] = None,
    door_id: Optional[int] = None,
    access_status: Optional[AccessStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """List access log entries, newest first."""
    return access_log.list_access_logs(
        db,
        card_uid=card_uid,
        door_id=door_id,
        status=access_status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit
    )


@router.get("/access/stats", response_model=AccessStatsResponse)
@api_limit
def get_access_stats(
    request: Request,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    door_id: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """Total / granted / denied counts."""
    return access_log.access_stats(db, start_date=start_date, end_date=end_date, door_id=door_id)


@router.get("/access/denied", response_model=List[AccessLogResponse])
@api_limit
def get_denied_attempts(
    request: Request,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """Most recent denied attempts."""
    return access_log.denied_attempts(db, start_date=start_date, end_date=end_date, limit=limit)


# Permission endpoints
@router.post("/permissions", response_model=PermissionResponse, responses={
    400: {"model": ErrorResponse, "description": "Malformed grant"},
    404: {"model": ErrorResponse, "description": "Role or door group not found"},
})
@api_limit
def grant_permission(request: Request, grant_data: PermissionGrant, db: Session = Depends(get_db)):
    """
    Grant a role access to a door group.

    An existing grant for the same role and door group is updated in place.
    """
    service = PermissionService(db)
    try:
        return service.grant(
            role_id=grant_data.role_id,
            door_group_id=grant_data.door_group_id,
            access_type=grant_data.access_type,
            start_time=grant_data.start_time,
            end_time=grant_data.end_time
        )
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionGrantError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.delete("/permissions/{role_id}/{door_group_id}", status_code=status.HTTP_204_NO_CONTENT)
@api_limit
def revoke_permission(request: Request, role_id: int, door_group_id: int, db: Session = Depends(get_db)):
    """Revoke a role's grant on a door group."""
    if not PermissionService(db).revoke(role_id, door_group_id):
        raise HTTPException(status_code=404, detail="Permission not found")
