"""
Access verification engine - decides whether a card may open a door.

Checks run in a fixed order and the first failing check decides the denial
reason. Every call, whatever the outcome, is written to the access log.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

import structlog

from access_control.models.enums import AccessStatus, AccessType, CardStatus, EmployeeStatus
from access_control.services import time_window
from access_control.services.access_log import AccessLogSink
from access_control.services.resolvers import NotFound, SqlAccessStore

logger = structlog.get_logger(__name__)

# Denial reasons - stable strings, relied on by readers and alerting
CARD_NOT_FOUND = "Card not found"
EMPLOYEE_NOT_FOUND = "Employee not found"
EMPLOYEE_INACTIVE = "Employee is inactive"
EMPLOYEE_NO_ROLE = "Employee has no role assigned"
DOOR_NOT_FOUND = "Door not found"
DOOR_NO_GROUPS = "Door has no groups assigned"
NO_PERMISSION = "No permission for this door"
OUTSIDE_TIME_RANGE = "Outside permitted time range"
SYSTEM_ERROR = "System error"
SYSTEM_ERROR_LOG_REASON = "System error during verification"

ACCESS_GRANTED = "Access granted"
ACCESS_GRANTED_TIME_BOUND = "Access granted (time-bound)"


def card_status_reason(status) -> str:
    return f"Card is {getattr(status, 'value', status)}"


@dataclass
class VerificationResult:
    status: AccessStatus
    message: str
    timestamp: str
    employee: Optional[Dict[str, str]] = None

    @property
    def granted(self) -> bool:
        return self.status == AccessStatus.GRANTED

    def to_dict(self) -> Dict:
        result = {
            "status": self.status.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.employee is not None:
            result["employee"] = self.employee
        return result


class AccessVerifier:
    """
    Orchestrates card -> employee -> role -> door -> groups -> grants -> time window.

    Collaborators are injected so tests can swap the store, the log sink or the clock.
    """

    def __init__(
        self,
        store: SqlAccessStore,
        log_sink: AccessLogSink,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.log_sink = log_sink
        self.clock = clock or time_window.utc_now

    def verify(self, card_uid: str, door_id: int) -> VerificationResult:
        """
        Verify whether a card can open a door.

        Never raises. Unexpected failures resolve to DENIED "System error" and
        are still logged with SYSTEM_ERROR_LOG_REASON.
        """
        now = None
        try:
            now = self.clock()
            return self._verify(card_uid, door_id, now)
        except Exception:
            logger.exception("access_verification_error", card_uid=card_uid, door_id=door_id)
            if not isinstance(now, datetime):
                now = time_window.utc_now()
            self.log_sink.record(card_uid, door_id, AccessStatus.DENIED, SYSTEM_ERROR_LOG_REASON, at=now)
            return VerificationResult(
                status=AccessStatus.DENIED,
                message=SYSTEM_ERROR,
                timestamp=time_window.now_iso(now)
            )

    def _verify(self, card_uid: str, door_id: int, now: datetime) -> VerificationResult:
        # 1-2. Card exists and is active
        card = self.store.resolve_card(card_uid)
        if isinstance(card, NotFound):
            return self._deny(card_uid, door_id, CARD_NOT_FOUND, now)
        card = card.value

        if card.status != CardStatus.ACTIVE:
            return self._deny(card_uid, door_id, card_status_reason(card.status), now)

        # 3-5. Employee exists, is active and holds a role
        employee = card.employee
        if employee is None:
            return self._deny(card_uid, door_id, EMPLOYEE_NOT_FOUND, now)

        if employee.status != EmployeeStatus.ACTIVE:
            return self._deny(card_uid, door_id, EMPLOYEE_INACTIVE, now)

        role = employee.role
        if role is None:
            return self._deny(card_uid, door_id, EMPLOYEE_NO_ROLE, now)

        # 6-7. Door exists and belongs to at least one group
        door = self.store.resolve_door(door_id)
        if isinstance(door, NotFound):
            return self._deny(card_uid, door_id, DOOR_NOT_FOUND, now)
        door = door.value

        door_group_ids = [group.id for group in door.groups]
        if not door_group_ids:
            return self._deny(card_uid, door_id, DOOR_NO_GROUPS, now)

        # 8. Role holds at least one grant on those groups
        permissions = self.store.find_permissions(role.id, door_group_ids)
        if not permissions:
            return self._deny(card_uid, door_id, NO_PERMISSION, now)

        # 9. First applicable grant wins, in lookup order
        for permission in permissions:
            if permission.access_type == AccessType.ALWAYS:
                return self._grant(card_uid, door_id, ACCESS_GRANTED, employee, role, now)

            if permission.access_type == AccessType.TIME_BOUND and time_window.is_within_range(
                door.timezone,
                permission.start_time,
                permission.end_time,
                now=now
            ):
                return self._grant(card_uid, door_id, ACCESS_GRANTED_TIME_BOUND, employee, role, now)

        # 10. Only time-bound grants, none open right now
        return self._deny(card_uid, door_id, OUTSIDE_TIME_RANGE, now)

    def _grant(self, card_uid, door_id, message, employee, role, now) -> VerificationResult:
        result = VerificationResult(
            status=AccessStatus.GRANTED,
            message=message,
            timestamp=time_window.now_iso(now),
            employee={"name": employee.name, "role": role.name}
        )
        logger.info(
            "access_granted",
            card_uid=card_uid,
            door_id=door_id,
            employee=employee.name,
            role=role.name,
            message=message,
        )
        # Recorded last so a failure above can never produce a second log row
        self.log_sink.record(card_uid, door_id, AccessStatus.GRANTED, None, at=now)
        return result

    def _deny(self, card_uid, door_id, reason, now) -> VerificationResult:
        result = VerificationResult(
            status=AccessStatus.DENIED,
            message=reason,
            timestamp=time_window.now_iso(now)
        )
        logger.warning("access_denied", card_uid=card_uid, door_id=door_id, reason=reason)
        self.log_sink.record(card_uid, door_id, AccessStatus.DENIED, reason, at=now)
        return result
