"""Enums for the access control system - the valid values for statuses and types."""
from enum import Enum


class CardStatus(str, Enum):
    """Lifecycle of a physical access card. Only ACTIVE cards can open doors."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    LOST = "LOST"
    BLOCKED = "BLOCKED"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class DoorGroupType(str, Enum):
    """Classification tag used to grant permissions to many doors at once."""
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    RESTRICTED = "RESTRICTED"


class AccessType(str, Enum):
    """How a role x door-group grant applies."""
    ALWAYS = "ALWAYS"
    TIME_BOUND = "TIME_BOUND"


class AccessStatus(str, Enum):
    """Outcome of a verification attempt."""
    GRANTED = "GRANTED"
    DENIED = "DENIED"
