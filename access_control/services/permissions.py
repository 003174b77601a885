"""Role x door-group permission grants."""
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from access_control.models.domain import DoorGroup, Permission, Role
from access_control.models.enums import AccessType
from access_control.services.time_window import is_valid_time_format

logger = structlog.get_logger(__name__)


class PermissionGrantError(Exception):
    """Raised when a grant request is malformed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


def _apply_window(permission, access_type, start_time, end_time):
    permission.access_type = access_type
    permission.start_time = start_time
    permission.end_time = end_time


class PermissionService:
    """Grants and revokes permissions, keeping one row per (role, door_group)."""

    def __init__(self, db: Session):
        self.db = db

    def grant(
        self,
        role_id: int,
        door_group_id: int,
        access_type: AccessType,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None
    ) -> Permission:
        """
        Grant a role access to a door group, or update the existing grant.

        Invariants:
        - TIME_BOUND requires start_time and end_time, both HH:mm:ss
        - ALWAYS grants carry no time window
        - Re-granting the same (role, door_group) updates in place

        Raises:
            LookupError: If the role or door group does not exist
            PermissionGrantError: If the time window is missing or malformed
        """
        if self.db.get(Role, role_id) is None:
            raise LookupError("Role not found")
        if self.db.get(DoorGroup, door_group_id) is None:
            raise LookupError("Door group not found")

        if access_type == AccessType.TIME_BOUND:
            if not start_time or not end_time:
                raise PermissionGrantError("TIME_BOUND access requires start_time and end_time")
            if not is_valid_time_format(start_time) or not is_valid_time_format(end_time):
                raise PermissionGrantError("Time must be in HH:mm:ss format")
        else:
            start_time = None
            end_time = None

        permission = self._find(role_id, door_group_id)
        if permission is None:
            permission = Permission(role_id=role_id, door_group_id=door_group_id)
            self.db.add(permission)
        _apply_window(permission, access_type, start_time, end_time)

        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent first grant inserted the same pair; update that row
            self.db.rollback()
            permission = self._find(role_id, door_group_id)
            if permission is None:
                raise
            _apply_window(permission, access_type, start_time, end_time)
            self.db.commit()

        self.db.refresh(permission)

        logger.info(
            "permission_granted",
            role_id=role_id,
            door_group_id=door_group_id,
            access_type=access_type.value,
            start_time=start_time,
            end_time=end_time,
        )
        return permission

    def _find(self, role_id: int, door_group_id: int) -> Optional[Permission]:
        return self.db.query(Permission).filter(
            Permission.role_id == role_id,
            Permission.door_group_id == door_group_id
        ).first()

    def revoke(self, role_id: int, door_group_id: int) -> bool:
        """Remove a grant. Returns False if there was nothing to remove."""
        deleted = self.db.query(Permission).filter(
            Permission.role_id == role_id,
            Permission.door_group_id == door_group_id
        ).delete()
        self.db.commit()

        if deleted:
            logger.info("permission_revoked", role_id=role_id, door_group_id=door_group_id)
        return bool(deleted)
