import pytest
import secrets
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole
from apps.purchases.models import Purchase, PurchaseItem
from apps.purchases.services import EqualSplit, save_split
from apps.realtime import get_channel_registry


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def purchase_buyer(db):
    """Create and return the user who pays for purchases (group owner)."""
    return User.objects.create_user(
        email='buyer@example.com',
        password='TestPass123!',
        display_name='Buyer',
    )


@pytest.fixture
def purchase_member1(db):
    """Create and return a group member."""
    return User.objects.create_user(
        email='member1@example.com',
        password='TestPass123!',
        display_name='Member One',
    )


@pytest.fixture
def purchase_member2(db):
    """Create and return another group member."""
    return User.objects.create_user(
        email='member2@example.com',
        password='TestPass123!',
        display_name='Member Two',
    )


@pytest.fixture
def purchase_outsider(db):
    """Create and return a user outside the group."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        display_name='Outsider',
    )


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def buyer_client(purchase_buyer):
    """Return API client authenticated as buyer."""
    return _client_for(purchase_buyer)


@pytest.fixture
def member1_client(purchase_member1):
    """Return API client authenticated as member1."""
    return _client_for(purchase_member1)


@pytest.fixture
def member2_client(purchase_member2):
    """Return API client authenticated as member2."""
    return _client_for(purchase_member2)


@pytest.fixture
def outsider_client(purchase_outsider):
    """Return API client authenticated as outsider."""
    return _client_for(purchase_outsider)


@pytest.fixture
def purchase_group(db, purchase_buyer, purchase_member1, purchase_member2):
    """Group of three: buyer (owner), member1, member2, joined in that order."""
    group = Group.objects.create(
        name='Shared Flat',
        owner=purchase_buyer,
        invite_code=secrets.token_urlsafe(12)[:16],
    )
    GroupMembership.objects.create(user=purchase_buyer, group=group, role=GroupRole.OWNER)
    GroupMembership.objects.create(user=purchase_member1, group=group, role=GroupRole.MEMBER)
    GroupMembership.objects.create(user=purchase_member2, group=group, role=GroupRole.MEMBER)
    return group


@pytest.fixture
def purchase(purchase_group, purchase_buyer):
    """A 90.00 purchase paid by the buyer, without items."""
    return Purchase.objects.create(
        group=purchase_group,
        purchased_by=purchase_buyer,
        total_amount=Decimal('90.00'),
        purchased_at=timezone.now(),
    )


@pytest.fixture
def itemized_purchase(purchase_group, purchase_buyer):
    """A 1500.00 purchase with two items: 6 x milk (600) and 3 x cheese (900)."""
    purchase = Purchase.objects.create(
        group=purchase_group,
        purchased_by=purchase_buyer,
        total_amount=Decimal('1500.00'),
        purchased_at=timezone.now(),
    )
    PurchaseItem.objects.create(
        purchase=purchase, name='Milk',
        purchased_quantity=Decimal('6'), actual_price=Decimal('600.00'), position=0,
    )
    PurchaseItem.objects.create(
        purchase=purchase, name='Cheese',
        purchased_quantity=Decimal('3'), actual_price=Decimal('900.00'), position=1,
    )
    return purchase


@pytest.fixture
def split_purchase(purchase, purchase_buyer):
    """The 90.00 purchase split equally: both members owe the buyer 30.00."""
    save_split(purchase_id=purchase.id, split=EqualSplit(), user=purchase_buyer)
    purchase.refresh_from_db()
    return purchase


@pytest.fixture
def member1_settlement(split_purchase, purchase_member1):
    """Pending settlement member1 -> buyer."""
    return split_purchase.settlements.get(from_member=purchase_member1)


@pytest.fixture
def channel_registry():
    """The process registry, emptied after the test."""
    registry = get_channel_registry()
    yield registry
    registry.cleanup()
