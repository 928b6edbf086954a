"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("LOG_FORMAT", "text")

from byggout.models.actor import Actor, Capability
from byggout.models.listing import Listing, SaleMode


@pytest.fixture
def seller():
    """Signed-in seller without capabilities."""
    return Actor(id="user-seller-0001", email="seller@example.com")


@pytest.fixture
def other_user():
    return Actor(id="user-other-0002", email="other@example.com")


@pytest.fixture
def admin():
    return Actor(id="user-admin-0003", email="admin@example.com", capabilities=frozenset({Capability.ADMIN}))


@pytest.fixture
def fixed_listing(seller):
    """Persisted fixed-price listing owned by ``seller``."""
    return Listing(
        id="local-1",
        row_id="8f0e4e4c-0000-4000-8000-000000000001",
        seller_id=seller.id,
        title="Gypsum boards 13mm",
        price=2400,
        location="Huddinge, Stockholm",
        condition="New/unopened",
        category="Boards",
        posted_at=datetime(2025, 9, 18, tzinfo=timezone.utc),
        sale_mode=SaleMode.FIXED,
    )


@pytest.fixture
def auction_listing(seller):
    return Listing(
        id="local-2",
        row_id="8f0e4e4c-0000-4000-8000-000000000002",
        seller_id=seller.id,
        title="Porcelain tiles 60x60",
        price=4800,
        location="Malmö",
        condition="New/unopened",
        category="Tiles",
        posted_at=datetime(2025, 9, 19, tzinfo=timezone.utc),
        sale_mode=SaleMode.AUCTION,
        current_bid=3600,
        bid_deadline=datetime(2025, 9, 27, 18, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def offer_listing(seller):
    return Listing(
        id="local-3",
        row_id="8f0e4e4c-0000-4000-8000-000000000003",
        seller_id=seller.id,
        title="Studs C24 45x95",
        price=1800,
        location="Mölndal, Gothenburg",
        condition="Good condition",
        category="Lumber",
        posted_at=datetime(2025, 9, 20, tzinfo=timezone.utc),
        sale_mode=SaleMode.OFFER,
        min_acceptable=1260,
    )


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client whose table builder chains back to itself."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=[]))
    client.table.return_value = query
    client.query = query

    bucket = MagicMock()
    bucket.upload = AsyncMock()
    bucket.get_public_url = AsyncMock(return_value="")
    client.storage.from_.return_value = bucket

    client.auth.get_session = AsyncMock(return_value=None)
    client.auth.sign_in_with_otp = AsyncMock()
    client.auth.sign_out = AsyncMock()
    return client

