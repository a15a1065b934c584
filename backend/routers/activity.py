from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from actors import AuthenticatedActor
from database import get_db
from schemas import GuestActivityCreate, GuestActivityResponse
from routers.shared import ok, ok_list
from security import require_director
from utils import ACTIVITY_LOG_LIMIT, client_ip, log_guest_activity, recent_guest_activity

router = APIRouter(prefix="/activity")


@router.post("/log", status_code=status.HTTP_201_CREATED)
def log_activity(payload: GuestActivityCreate, request: Request, db: Session = Depends(get_db)):
    entry = log_guest_activity(
        db,
        payload.action,
        payload.details,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return ok(GuestActivityResponse.model_validate(entry))


@router.get("/logs")
def activity_logs(
    limit: int = Query(ACTIVITY_LOG_LIMIT, ge=1, le=ACTIVITY_LOG_LIMIT),
    actor: AuthenticatedActor = Depends(require_director),
    db: Session = Depends(get_db)
):
    entries = recent_guest_activity(db, limit)
    return ok_list([GuestActivityResponse.model_validate(entry) for entry in entries])
