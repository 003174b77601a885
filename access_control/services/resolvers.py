"""
Read adapters over the data store used by access verification.

Absence is a normal outcome here and is returned as NotFound, never raised.
"""
from dataclasses import dataclass
from typing import Generic, Iterable, List, TypeVar, Union

from sqlalchemy.orm import Session, joinedload, selectinload

from access_control.models.domain import AccessCard, Door, Employee, Floor, Permission

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    what: str
    key: object = None


Resolution = Union[Found[T], NotFound]


class SqlAccessStore:
    """Card, door and permission lookups for one verification call."""

    def __init__(self, db: Session):
        self.db = db

    def resolve_card(self, card_uid: str) -> Resolution[AccessCard]:
        """Card together with its employee and the employee's role, in one query."""
        card = (
            self.db.query(AccessCard)
            .options(joinedload(AccessCard.employee).joinedload(Employee.role))
            .filter(AccessCard.card_uid == card_uid)
            .first()
        )
        if card is None:
            return NotFound("card", card_uid)
        return Found(card)

    def resolve_door(self, door_id: int) -> Resolution[Door]:
        """Door together with its groups and its floor -> building (for the timezone)."""
        door = (
            self.db.query(Door)
            .options(
                selectinload(Door.groups),
                joinedload(Door.floor).joinedload(Floor.building),
            )
            .filter(Door.id == door_id)
            .first()
        )
        if door is None:
            return NotFound("door", door_id)
        return Found(door)

    def find_permissions(self, role_id: int, door_group_ids: Iterable[int]) -> List[Permission]:
        """
        All grants of a role on any of the given door groups.

        No ordering is applied; callers get store iteration order.
        """
        door_group_ids = list(door_group_ids)
        if not door_group_ids:
            return []
        return (
            self.db.query(Permission)
            .filter(
                Permission.role_id == role_id,
                Permission.door_group_id.in_(door_group_ids)
            )
            .all()
        )
