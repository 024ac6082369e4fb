"""
Publish helpers for group realtime events.

Each helper builds an envelope and hands it to the process registry.
``exclude_member_id`` is normally the acting user, so their own action is
not echoed back to them.
"""

from apps.realtime import get_channel_registry
from apps.realtime.messages import MessageType, build_message, group_channel


def _member_key(member_id):
    return str(member_id) if member_id is not None else None


def publish_to_group(group_id, message, exclude_member_id=None) -> int:
    """Broadcast a prepared envelope on the group's channel."""
    return get_channel_registry().broadcast(
        group_channel(group_id),
        message,
        exclude_member_id=_member_key(exclude_member_id),
    )


def broadcast_item_update(group_id, item_id, data, exclude_member_id=None) -> int:
    message = build_message(
        MessageType.ITEM_UPDATE, data, group_id=group_id, item_id=item_id
    )
    return publish_to_group(group_id, message, exclude_member_id)


def broadcast_purchase_update(group_id, purchase_id, data, exclude_member_id=None) -> int:
    message = build_message(
        MessageType.PURCHASE_UPDATE, data, group_id=group_id, purchase_id=purchase_id
    )
    return publish_to_group(group_id, message, exclude_member_id)


def broadcast_message(group_id, message_id, data, exclude_member_id=None) -> int:
    message = build_message(
        MessageType.MESSAGE, data, group_id=group_id, message_id=message_id
    )
    return publish_to_group(group_id, message, exclude_member_id)


def broadcast_member_update(group_id, data, exclude_member_id=None) -> int:
    message = build_message(MessageType.MEMBER_UPDATE, data, group_id=group_id)
    return publish_to_group(group_id, message, exclude_member_id)


def send_to_member(group_id, member_id, message) -> bool:
    """Unicast a prepared envelope to one member of the group."""
    return get_channel_registry().send_to_user(
        group_channel(group_id), _member_key(member_id), message
    )
