"""Domain models - organizations, people, buildings, doors and the grants between them."""
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from access_control.database import Base
from access_control.models.enums import (
    AccessType,
    CardStatus,
    DoorGroupType,
    EmployeeStatus,
)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    employees = relationship("Employee", back_populates="organization")
    roles = relationship("Role", back_populates="organization")
    buildings = relationship("Building", back_populates="organization")


class Building(Base):
    """A building carries the IANA timezone that time-bound grants are evaluated in."""
    __tablename__ = "buildings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    timezone = Column(String, nullable=False, default="UTC")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="buildings")
    floors = relationship("Floor", back_populates="building", cascade="all, delete-orphan")


class Floor(Base):
    __tablename__ = "floors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    building_id = Column(Integer, ForeignKey("buildings.id"), nullable=False)
    floor_number = Column(Integer, nullable=False)

    building = relationship("Building", back_populates="floors")
    office_spaces = relationship("OfficeSpace", back_populates="floor", cascade="all, delete-orphan")
    doors = relationship("Door", back_populates="floor")


class OfficeSpace(Base):
    __tablename__ = "office_spaces"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    floor_id = Column(Integer, ForeignKey("floors.id"), nullable=False)
    name = Column(String, nullable=False)

    floor = relationship("Floor", back_populates="office_spaces")
    doors = relationship("Door", back_populates="office_space")


class DoorGroup(Base):
    """
    Classification tag for doors (PUBLIC / PRIVATE / RESTRICTED).

    Permissions are granted to groups, never to individual doors.
    """
    __tablename__ = "door_groups"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    type = Column(SQLEnum(DoorGroupType), nullable=False)
    description = Column(String, nullable=True)

    doors = relationship("Door", secondary="door_door_groups", back_populates="groups")
    permissions = relationship("Permission", back_populates="door_group", cascade="all, delete-orphan")


class DoorDoorGroup(Base):
    """Explicit junction between doors and door groups."""
    __tablename__ = "door_door_groups"
    __table_args__ = (UniqueConstraint("door_id", "door_group_id", name="uq_door_door_group"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    door_id = Column(Integer, ForeignKey("doors.id"), nullable=False, index=True)
    door_group_id = Column(Integer, ForeignKey("door_groups.id"), nullable=False, index=True)


class Door(Base):
    """
    A physical door with a card reader.

    Invariants:
    - A door with no groups can never grant access
    - Timezone comes from floor -> building, "UTC" when either is missing
    """
    __tablename__ = "doors"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    office_space_id = Column(Integer, ForeignKey("office_spaces.id"), nullable=True)
    floor_id = Column(Integer, ForeignKey("floors.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    office_space = relationship("OfficeSpace", back_populates="doors")
    floor = relationship("Floor", back_populates="doors")
    groups = relationship("DoorGroup", secondary="door_door_groups", back_populates="doors")

    @property
    def timezone(self) -> str:
        if self.floor is not None and self.floor.building is not None and self.floor.building.timezone:
            return self.floor.building.timezone
        return "UTC"


class Role(Base):
    """
    A role owns the permission grants of every employee holding it.

    System roles ("Employee", "Manager", "IT Admin") have no organization.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_system_role = Column(Boolean, nullable=False, default=False)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)

    organization = relationship("Organization", back_populates="roles")
    employees = relationship("Employee", back_populates="role")
    permissions = relationship("Permission", back_populates="role", cascade="all, delete-orphan")


class Permission(Base):
    """
    Role x door-group grant.

    Invariants:
    - At most one row per (role, door_group); re-granting updates in place
    - TIME_BOUND grants carry start_time/end_time as HH:mm:ss strings
    """
    __tablename__ = "role_door_group_permissions"
    __table_args__ = (UniqueConstraint("role_id", "door_group_id", name="uq_role_door_group"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    door_group_id = Column(Integer, ForeignKey("door_groups.id"), nullable=False, index=True)
    access_type = Column(SQLEnum(AccessType), nullable=False, default=AccessType.ALWAYS)
    start_time = Column(String(8), nullable=True)
    end_time = Column(String(8), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    role = relationship("Role", back_populates="permissions")
    door_group = relationship("DoorGroup", back_populates="permissions")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)
    status = Column(SQLEnum(EmployeeStatus), nullable=False, default=EmployeeStatus.ACTIVE)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    organization = relationship("Organization", back_populates="employees")
    role = relationship("Role", back_populates="employees")
    card = relationship("AccessCard", back_populates="employee", uselist=False)


class AccessCard(Base):
    """
    Physical credential presented to a reader.

    Invariants:
    - card_uid is unique
    - At most one card per employee
    """
    __tablename__ = "access_cards"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    card_uid = Column(String, nullable=False, unique=True, index=True)
    status = Column(SQLEnum(CardStatus), nullable=False, default=CardStatus.ACTIVE)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True, unique=True)
    issued_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    employee = relationship("Employee", back_populates="card")
