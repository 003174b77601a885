"""Pytest configuration and shared fixtures."""
from datetime import datetime

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from access_control.database import Base
from access_control.models.audit import AccessLogEntry  # noqa: F401
from access_control.models.domain import (
    AccessCard,
    Building,
    Door,
    DoorGroup,
    Employee,
    Floor,
    Organization,
    Permission,
    Role,
)
from access_control.models.enums import AccessType, CardStatus, DoorGroupType, EmployeeStatus
from access_control.services.access_log import AccessLogSink
from access_control.services.resolvers import SqlAccessStore
from access_control.services.verification import AccessVerifier


@pytest.fixture
def clock_at():
    """Factory for fixed clocks returning a given UTC wall time on 2025-01-15."""
    def _clock_at(hour, minute=0, second=0):
        instant = pytz.UTC.localize(datetime(2025, 1, 15, hour, minute, second))
        return lambda: instant
    return _clock_at


@pytest.fixture
def db_engine():
    """In-memory SQLite shared by every session of a test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Create a fresh in-memory database for each test."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def log_sink(session_factory):
    return AccessLogSink(session_factory)


@pytest.fixture
def make_verifier(db_session, log_sink):
    """Build an AccessVerifier with an optional fixed clock."""
    def _make(clock=None):
        return AccessVerifier(SqlAccessStore(db_session), log_sink, clock=clock)
    return _make


@pytest.fixture
def site(db_session):
    """
    One organization in a New York building, with:

    - three door groups (PUBLIC, PRIVATE, RESTRICTED)
    - lobby door (PUBLIC), office door (PRIVATE), server room (RESTRICTED),
      and a door with no groups
    - an "Employee" role with an ALWAYS grant on PUBLIC
    - an active employee holding that role, with an active card "CARD-001"
    """
    org = Organization(name="Acme Corp")
    building = Building(name="HQ", organization=org, timezone="America/New_York")
    floor = Floor(building=building, floor_number=1)

    public = DoorGroup(name="Public areas", type=DoorGroupType.PUBLIC)
    private = DoorGroup(name="Offices", type=DoorGroupType.PRIVATE)
    restricted = DoorGroup(name="Restricted", type=DoorGroupType.RESTRICTED)

    lobby = Door(name="Lobby", location="Ground floor entrance", floor=floor, groups=[public])
    office = Door(name="Office 101", floor=floor, groups=[private])
    server_room = Door(name="Server room", floor=floor, groups=[restricted])
    closet = Door(name="Closet", floor=floor, groups=[])

    role = Role(name="Employee", is_system_role=True)
    employee = Employee(
        name="Jane Doe",
        email="jane@acme.test",
        status=EmployeeStatus.ACTIVE,
        organization=org,
        role=role
    )
    card = AccessCard(card_uid="CARD-001", status=CardStatus.ACTIVE, employee=employee)

    db_session.add_all([org, building, floor, public, private, restricted,
                        lobby, office, server_room, closet, role, employee, card])
    db_session.flush()
    db_session.add(Permission(role_id=role.id, door_group_id=public.id, access_type=AccessType.ALWAYS))
    db_session.commit()

    return {
        "org": org,
        "building": building,
        "public": public,
        "private": private,
        "restricted": restricted,
        "lobby": lobby,
        "office": office,
        "server_room": server_room,
        "closet": closet,
        "role": role,
        "employee": employee,
        "card": card,
    }
