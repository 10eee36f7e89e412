"""
pytest configuration and shared fixtures
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import Role, User
from accounts.utils import issue_session_token
from auctions.models import Auction, AuctionStatus, AutoBid


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests that go through the ASGI or HTTP stack"
    )


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def make_user(db):
    created = []

    def _make(role=Role.USER, **extra_fields):
        n = len(created) + 1
        user = User.objects.create_user(
            email=f"user{n}@example.com",
            username=f"user{n}",
            password="pass-1234",
            role=role,
            **extra_fields
        )
        created.append(user)
        return user

    return _make


@pytest.fixture
def seller(make_user):
    return make_user(role=Role.SELLER)


@pytest.fixture
def bidder_a(make_user):
    return make_user()


@pytest.fixture
def bidder_b(make_user):
    return make_user()


@pytest.fixture
def bidder_c(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(role=Role.ADMIN)


# =============================================================================
# Auctions
# =============================================================================


@pytest.fixture
def make_auction(db, seller):
    """Live auction: starting price 1000, increment 100, two hours left."""

    def _make(**overrides):
        now = timezone.now()
        fields = {
            'seller': seller,
            'title': "Vintage watch",
            'starting_price': Decimal('1000.00'),
            'bid_increment': Decimal('100.00'),
            'start_time': now - timedelta(hours=1),
            'end_time': now + timedelta(hours=2),
            'status': AuctionStatus.ACTIVE,
        }
        fields.update(overrides)
        return Auction.objects.create(**fields)

    return _make


@pytest.fixture
def auction(make_auction):
    return make_auction()


@pytest.fixture
def make_auto_bid(db):
    """Standing instruction created directly, without running the resolver."""

    def _make(auction, user, max_amount, created_at=None):
        return AutoBid.objects.create(
            auction=auction,
            user=user,
            max_bid_amount=Decimal(max_amount),
            created_at=created_at or timezone.now(),
        )

    return _make


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin django.utils.timezone.now to a fixed instant."""
    now = timezone.now().replace(microsecond=0)
    monkeypatch.setattr('django.utils.timezone.now', lambda: now)
    return now


# =============================================================================
# API clients
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_session_token(user)}")
        return client

    return _client
