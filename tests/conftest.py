"""
Shared test fixtures — in-memory SQLite session, sample survey trees, catalog.
"""

import os
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set DATABASE_URL before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from survey_core.database import Base
from survey_core import models  # noqa: F401 registers tables on Base
from survey_core.catalog import InMemoryCatalog
from survey_core.schemas import Building


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def sample_building_data():
    """
    Hotel-style building in snapshot (camelCase) form.

    Central rack: 1 existing core switch, 1 proposal firewall/router.
    Floor 1 (not typical): 1 floor rack with a proposal switch.
    Floor 2-4 (typical × 3): 1 typical guest room × 5, each with 2 proposal APs.
    """
    return {
        "id": "B1",
        "name": "Main Building",
        "centralRack": {
            "id": "CR1",
            "name": "Central Rack",
            "switches": [
                {"id": "sw-core", "brand": "Cisco", "model": "C9300",
                 "ports": 48, "poeEnabled": True, "isFutureProposal": False},
            ],
            "routers": [
                {"id": "rt-1", "brand": "Fortinet", "model": "FG-60F",
                 "isFutureProposal": True,
                 "products": [{"productId": "FW-60F", "quantity": 1}],
                 "services": [{"id": "s1", "serviceId": "SVC-INSTALL", "quantity": 2}]},
            ],
        },
        "floors": [
            {
                "id": "F1", "name": "Floor 1", "level": 1,
                "racks": [
                    {"id": "FR1", "name": "Rack A",
                     "switches": [
                         {"id": "sw-f1", "brand": "Cisco", "model": "CBS350",
                          "ports": 24, "isFutureProposal": True,
                          "products": [{"productId": "SW-24P", "quantity": 1}],
                          "services": [{"id": "s2", "serviceId": "SVC-INSTALL"}]},
                     ]},
                ],
                "rooms": [],
            },
            {
                "id": "F2", "name": "Typical Floor", "level": 2,
                "isTypical": True, "repeatCount": 3,
                "racks": [],
                "rooms": [
                    {"id": "R201", "name": "Guest Room", "number": "201",
                     "isTypical": True, "repeatCount": 5,
                     "devices": [
                         {"id": "ap-1", "type": "AP", "quantity": 2,
                          "isFutureProposal": True,
                          "products": [{"productId": "AP-6", "quantity": 2}]},
                     ],
                     "outlets": [
                         {"id": "out-1", "type": "DATA", "quantity": 4},
                     ]},
                ],
            },
        ],
    }


@pytest.fixture
def building():
    return Building.model_validate(sample_building_data())


@pytest.fixture
def catalog():
    return InMemoryCatalog(
        products=[
            {"id": "FW-60F", "name": "FortiGate 60F", "category": "Firewall",
             "brand": "Fortinet", "price": 800.0},
            {"id": "SW-24P", "name": "24-port PoE switch", "category": "Network Switch",
             "price": 350.0},
            {"id": "AP-6", "name": "WiFi 6 access point", "price": 120.0},
            {"id": "PC-100", "name": "Desktop PC", "category": "Workstation", "price": 500.0},
            {"id": "P1", "name": "Patch panel", "category": "Cabling", "price": 10.0},
        ],
        services=[
            {"id": "SVC-INSTALL", "name": "Installation", "category": "Labor", "price": 50.0},
        ],
    )


@pytest.fixture
def building_data():
    """Raw snapshot dict of the sample building."""
    return sample_building_data()
