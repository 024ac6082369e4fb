"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
Membership changes are announced to connected members as ``member_update``
realtime events once the transaction commits.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    NotMemberError,
    OwnerCannotLeaveError,
)

from .group_management import (
    create_group,
    get_group_by_id,
)

from .membership_management import (
    join_group,
    leave_group,
    get_group_members,
    get_member_ids,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'InvalidInviteCodeError',
    'AlreadyMemberError',
    'NotMemberError',
    'OwnerCannotLeaveError',

    # Group Management
    'create_group',
    'get_group_by_id',

    # Membership Management
    'join_group',
    'leave_group',
    'get_group_members',
    'get_member_ids',
]
