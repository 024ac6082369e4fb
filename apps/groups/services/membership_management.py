"""
Membership management service.

Handles group membership operations with concurrency protection.
"""

from typing import List
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole
from apps.realtime.publishers import broadcast_member_update

from .exceptions import (
    GroupNotFoundError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    NotMemberError,
    OwnerCannotLeaveError,
)


def _announce_membership(group: Group, user: User, action: str) -> None:
    """Broadcast a member_update to the rest of the group after commit."""
    data = {
        'action': action,
        'user_id': str(user.id),
        'display_name': user.get_display_name(),
    }
    transaction.on_commit(
        lambda: broadcast_member_update(group.id, data, exclude_member_id=user.id)
    )


@transaction.atomic
def join_group(
    *,
    group_id: UUID,
    user: User,
    invite_code: str
) -> GroupMembership:
    """
    Join a group using an invite code.

    Uses row-level locking to prevent race conditions when checking
    and creating memberships.

    Args:
        group_id: UUID of the group
        user: User joining the group
        invite_code: Invite code for verification

    Returns:
        Created GroupMembership instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InvalidInviteCodeError: If invite code is incorrect
        AlreadyMemberError: If user is already a member (caught from IntegrityError)
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if group.invite_code != invite_code:
        raise InvalidInviteCodeError("Invalid invite code")

    if group.has_member(user):
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    try:
        membership = GroupMembership.objects.create(
            user=user,
            group=group,
            role=GroupRole.MEMBER
        )
    except IntegrityError:
        raise AlreadyMemberError(f"User is already a member of {group.name}")

    _announce_membership(group, user, 'joined')

    return membership


@transaction.atomic
def leave_group(*, group_id: UUID, user: User) -> None:
    """
    Leave a group.

    Owner cannot leave their own group.

    Args:
        group_id: UUID of the group
        user: User leaving the group

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not a member
        OwnerCannotLeaveError: If user is the owner
    """
    try:
        group = Group.objects.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if group.owner == user:
        raise OwnerCannotLeaveError("Group owner cannot leave the group.")

    try:
        membership = (
            GroupMembership.objects
            .select_for_update()
            .get(user=user, group=group)
        )
        membership.delete()
    except GroupMembership.DoesNotExist:
        raise NotMemberError(f"User is not a member of {group.name}")

    _announce_membership(group, user, 'left')


def get_group_members(*, group_id: UUID) -> QuerySet[GroupMembership]:
    """
    Get all members of a group in join order.

    Args:
        group_id: UUID of the group

    Returns:
        QuerySet of GroupMembership instances

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    return (
        GroupMembership.objects
        .filter(group_id=group_id)
        .select_related('user')
        .order_by('joined_at', 'id')
    )


def get_member_ids(*, group_id: UUID) -> List[str]:
    """
    Member ids of a group as strings, in join order.

    This order is the stable order used for remainder distribution and
    settlement netting.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        group = Group.objects.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    return group.get_member_ids()
