"""
Access log sink and read-side queries over the audit trail.

The sink favours availability of the access decision over durability of the
log: a failed write is rolled back and reported to operators, never raised.
"""
import math
from datetime import datetime
from typing import Callable, Dict, List, Optional

import pytz
import structlog
from sqlalchemy.orm import Session

from access_control.models.audit import AccessLogEntry
from access_control.models.enums import AccessStatus

logger = structlog.get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


class AccessLogSink:
    """Appends one AccessLogEntry per verification attempt."""

    def __init__(self, session_factory: Callable[[], Session], clock: Optional[Callable[[], datetime]] = None):
        self.session_factory = session_factory
        self.clock = clock or datetime.utcnow

    def record(
        self,
        card_uid: str,
        door_id: int,
        status: AccessStatus,
        denial_reason: Optional[str] = None,
        at: Optional[datetime] = None
    ) -> None:
        """
        Write an audit row in its own session.

        `at` is the instant the decision was made; the sink clock is used
        when it is not given. Aware values are stored as naive UTC.

        Any exception is caught here and emitted as an error event. Nothing
        propagates to the caller.
        """
        db = None
        try:
            db = self.session_factory()
            db.add(AccessLogEntry(
                card_uid=card_uid,
                door_id=door_id,
                status=status,
                denial_reason=denial_reason,
                timestamp=_as_utc(at or self.clock())
            ))
            db.commit()
        except Exception as exc:
            if db is not None:
                try:
                    db.rollback()
                except Exception as rollback_exc:
                    logger.warning("access_log_rollback_failed", error=str(rollback_exc))
            logger.error(
                "access_log_write_failed",
                card_uid=card_uid,
                door_id=door_id,
                status=getattr(status, "value", status),
                denial_reason=denial_reason,
                error=str(exc),
            )
        finally:
            if db is not None:
                db.close()


def _apply_date_range(query, start_date: Optional[datetime], end_date: Optional[datetime]):
    if start_date:
        query = query.filter(AccessLogEntry.timestamp >= start_date)
    if end_date:
        query = query.filter(AccessLogEntry.timestamp <= end_date)
    return query


def list_access_logs(
    db: Session,
    card_uid: Optional[str] = None,
    door_id: Optional[int] = None,
    status: Optional[AccessStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50
) -> Dict:
    """
    Filtered, paginated audit log, newest first.

    Returns:
        {"data": [AccessLogEntry, ...], "pagination": {page, limit, total, total_pages}}
    """
    query = db.query(AccessLogEntry)

    if card_uid:
        query = query.filter(AccessLogEntry.card_uid == card_uid)
    if door_id is not None:
        query = query.filter(AccessLogEntry.door_id == door_id)
    if status:
        query = query.filter(AccessLogEntry.status == status)
    query = _apply_date_range(query, start_date, end_date)

    total = query.count()
    entries = (
        query.order_by(AccessLogEntry.timestamp.desc(), AccessLogEntry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "data": entries,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }


def access_stats(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    door_id: Optional[int] = None
) -> Dict[str, int]:
    """Total, granted and denied counts over the same filter set."""
    query = _apply_date_range(db.query(AccessLogEntry), start_date, end_date)
    if door_id is not None:
        query = query.filter(AccessLogEntry.door_id == door_id)

    return {
        "total": query.count(),
        "granted": query.filter(AccessLogEntry.status == AccessStatus.GRANTED).count(),
        "denied": query.filter(AccessLogEntry.status == AccessStatus.DENIED).count(),
    }


def denied_attempts(
    db: Session,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 100
) -> List[AccessLogEntry]:
    """Most recent denied attempts."""
    query = db.query(AccessLogEntry).filter(AccessLogEntry.status == AccessStatus.DENIED)
    query = _apply_date_range(query, start_date, end_date)
    return (
        query.order_by(AccessLogEntry.timestamp.desc(), AccessLogEntry.id.desc())
        .limit(limit)
        .all()
    )
