"""
Group management service.

Handles group creation and lookup with proper transaction safety.
"""

import secrets
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Prefetch

from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import GroupNotFoundError


def create_group(
    *,
    name: str,
    owner: User,
    description: str = '',
    max_retries: int = 5
) -> Group:
    """
    Create a new group and add the creator as owner.

    This is a multi-step operation wrapped in a transaction:
    1. Generate unique invite code
    2. Create the group
    3. Create owner membership

    Args:
        name: Group name
        owner: User who will own the group
        description: Optional group description
        max_retries: Maximum attempts to generate unique invite code

    Returns:
        Created Group instance

    Raises:
        RuntimeError: If cannot generate unique invite code after retries
    """
    for attempt in range(max_retries):
        invite_code = secrets.token_urlsafe(12)[:16]

        try:
            # Each attempt is a separate transaction
            with transaction.atomic():
                group = Group.objects.create(
                    name=name,
                    owner=owner,
                    description=description,
                    invite_code=invite_code
                )

                GroupMembership.objects.create(
                    user=owner,
                    group=group,
                    role=GroupRole.OWNER
                )

                return group

        except IntegrityError:
            # Invite code collision (very rare)
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique invite code after {max_retries} attempts"
                )
            continue

    raise RuntimeError("Unexpected error in group creation")


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID with its memberships prefetched.

    Args:
        group_id: UUID of the group

    Returns:
        Group instance

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('owner')
            .prefetch_related(
                Prefetch(
                    'memberships',
                    queryset=GroupMembership.objects.select_related('user')
                )
            )
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")
