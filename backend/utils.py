from typing import List, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from models import GuestActivity
from time_utils import now_tz

ACTIVITY_LOG_LIMIT = 100


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def log_guest_activity(
    db: Session,
    action: str,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> GuestActivity:
    entry = GuestActivity(
        action=action,
        details=details or {},
        ip_address=ip_address,
        user_agent=(user_agent or "")[:500] or None,
        timestamp=now_tz(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def recent_guest_activity(db: Session, limit: int = ACTIVITY_LOG_LIMIT) -> List[GuestActivity]:
    return (
        db.query(GuestActivity)
        .order_by(GuestActivity.timestamp.desc(), GuestActivity.id.desc())
        .limit(limit)
        .all()
    )
