"""
Pytest fixtures shared by every escrow test package.

Settlement locks live in Redis; all escrow tests run against FakeRedis so
lock behaviour (including contention) is real but needs no server.

Usage:
    def test_confirm(delivered_escrow, guest, gateway):
        result = EscrowService.confirm_receipt(
            delivered_escrow.booking_id, satisfied=True, actor=guest, gateway=gateway
        )
        assert len(gateway.capture_calls) == 1
"""

import pytest

from escrow.services import DeliveryData
from escrow.state_machines import DeliveryMethod, PhotoResolution
from escrow.tests.factories import (
    BookingFactory,
    EscrowPaymentFactory,
    PhotoDeliveryFactory,
    UserFactory,
)
from escrow.tests.fakes import FakeRedis, MockGateway


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    """Route settlement locks to an in-memory Redis."""
    redis = FakeRedis()
    mocker.patch("escrow.locks.get_redis_connection", return_value=redis)
    return redis


@pytest.fixture
def gateway():
    return MockGateway()


# =============================================================================
# Parties
# =============================================================================


@pytest.fixture
def guest(db):
    return UserFactory(username="guest")


@pytest.fixture
def photographer(db):
    return UserFactory(username="photographer")


@pytest.fixture
def stranger(db):
    """A signed-in user with no part in the booking."""
    return UserFactory(username="stranger")


@pytest.fixture
def booking(db, guest, photographer):
    """Booking of 10000 with a 1000 platform fee."""
    return BookingFactory(
        request__guest=guest,
        photographer=photographer,
        total_amount=10000,
        platform_fee=1000,
    )


# =============================================================================
# Escrow States
# =============================================================================


@pytest.fixture
def pending_escrow(db, booking):
    return EscrowPaymentFactory(booking=booking)


@pytest.fixture
def escrowed_escrow(db, booking):
    """Authorized hold, photos not delivered yet."""
    return EscrowPaymentFactory(booking=booking, escrowed=True)


@pytest.fixture
def delivered_escrow(db, booking):
    """Authorized hold with delivered photos: ready to settle."""
    escrow = EscrowPaymentFactory(booking=booking, delivered=True)
    PhotoDeliveryFactory(booking=booking, delivered_at=escrow.delivered_at)
    return escrow


# =============================================================================
# Inputs
# =============================================================================


@pytest.fixture
def delivery_data():
    """A valid gigafile share link delivery."""
    return DeliveryData(
        delivery_method=DeliveryMethod.EXTERNAL_URL,
        photo_count=40,
        resolution=PhotoResolution.HIGH,
        formats=["jpg", "raw"],
        total_size_mb=850,
        external_url="https://46.gigafile.nu/0101-abcdef",
        external_service="gigafile",
        external_password="1234",
        photographer_message="Thanks for the great session!",
    )
