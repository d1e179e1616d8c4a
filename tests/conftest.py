# tests/conftest.py
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Must be set before anything imports app.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MQTT_ENABLED"] = "false"
os.environ["LOG_TO_FILE"] = "false"
os.environ["API_KEY"] = ""

import pytest
from sqlalchemy.orm import sessionmaker
from app.database import build_engine, create_tables
from app.services import vehicle_service


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def vehicle(db):
    return vehicle_service.register_vehicle(db, driver_id=7, location="Tunis")
