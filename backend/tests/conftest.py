"""
Pytest fixtures for StockCycle backend tests.

Provides test database setup, inventory factories, and test client.
"""

import random

import pytest
from stockcycle import create_app
from stockcycle.extensions import db
from stockcycle.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'FINALIZATION_REQUIRES_COMPLETE_REPORT': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def rng():
    """Seeded RNG so codes and generated counts are reproducible."""
    return random.Random(1234)


@pytest.fixture(scope='function')
def inventory(db_session, rng):
    """An active inventory."""
    inventory = inventory_service.start_inventory("Maria Souza", rng=rng)
    db_session.commit()
    return inventory


@pytest.fixture(scope='function')
def finalized_inventory(db_session):
    """A finalized inventory, set up directly without going through the gate."""
    from stockcycle.models import Inventory
    from stockcycle.time_utils import utcnow

    inventory = Inventory(
        code="INV-JAN-20260105-11111",
        responsible="João Lima",
        status="finalized",
        started_at=utcnow(),
        ended_at=utcnow(),
    )
    db_session.add(inventory)
    db_session.commit()
    return inventory
