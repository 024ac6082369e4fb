import pytest
import secrets
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole
from apps.realtime import get_channel_registry
from apps.realtime.registry import ChannelRegistry


@pytest.fixture
def registry():
    """A fresh registry, independent of the app's."""
    registry = ChannelRegistry()
    yield registry
    registry.cleanup()


@pytest.fixture
def channel_registry():
    """The process registry, emptied after the test."""
    registry = get_channel_registry()
    yield registry
    registry.cleanup()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def subscriber(db):
    """Create and return a group owner who subscribes to updates."""
    return User.objects.create_user(
        email='subscriber@example.com',
        password='TestPass123!',
        display_name='Subscriber',
    )


@pytest.fixture
def stranger(db):
    """Create and return a user outside the group."""
    return User.objects.create_user(
        email='stranger@example.com',
        password='TestPass123!',
        display_name='Stranger',
    )


@pytest.fixture
def staff_user(db):
    """Create and return a staff user."""
    return User.objects.create_user(
        email='staff@example.com',
        password='TestPass123!',
        is_staff=True,
    )


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def subscriber_client(subscriber):
    return _client_for(subscriber)


@pytest.fixture
def stranger_client(stranger):
    return _client_for(stranger)


@pytest.fixture
def staff_client(staff_user):
    return _client_for(staff_user)


@pytest.fixture
def realtime_group(db, subscriber):
    """Group owned by the subscriber."""
    group = Group.objects.create(
        name='Realtime Flat',
        owner=subscriber,
        invite_code=secrets.token_urlsafe(12)[:16],
    )
    GroupMembership.objects.create(user=subscriber, group=group, role=GroupRole.OWNER)
    return group
