"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, create_db_engine
from store import SqlAlchemyStore
# Pytest fixtures - imported to make them available to tests
from tests.fixtures import (  # noqa: F401
    exchange,
    instrument,
    listing,
    other_listing,
    portfolio,
)
from tests.fixtures.mocks import (
    MockEnrichmentFeed,
    MockListingFeed,
    SAMPLE_ENRICHMENT,
    SAMPLE_LISTINGS,
)


@pytest.fixture(name="db")
def db_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="store")
def store_fixture(db):
    """Store backed by the test session."""
    return SqlAlchemyStore(db)


@pytest.fixture(name="mock_listing_feed")
def mock_listing_feed_fixture():
    """Create a mock listing feed with sample data."""
    return MockListingFeed(SAMPLE_LISTINGS)


@pytest.fixture(name="mock_enrichment_feed")
def mock_enrichment_feed_fixture():
    """Create a mock enrichment feed with sample data."""
    return MockEnrichmentFeed(SAMPLE_ENRICHMENT)
