"""
Message envelopes pushed through the channel registry.

Every envelope has a ``type``, a ``timestamp`` (ISO-8601, UTC) and a
``data`` payload whose shape depends on the type. Optional context keys
(``group_id``, ``purchase_id``, ``item_id``, ``message_id``) identify the
object that changed. The registry never interprets envelopes.
"""

from django.db import models
from django.utils import timezone


class MessageType(models.TextChoices):
    ITEM_UPDATE = 'item_update', 'Item update'
    PURCHASE_UPDATE = 'purchase_update', 'Purchase update'
    MESSAGE = 'message', 'Chat message'
    MEMBER_UPDATE = 'member_update', 'Member update'
    CONNECTION = 'connection', 'Connection'
    PING = 'ping', 'Ping'


def group_channel(group_id) -> str:
    """Channel key for a shopping group."""
    return f'group:{group_id}'


def build_message(message_type, data=None, **context) -> dict:
    """
    Build a message envelope.

    Context values that are None are left out; others are stringified so
    that UUIDs serialize cleanly.
    """
    message = {
        'type': str(message_type),
        'data': data,
        'timestamp': timezone.now().isoformat(),
    }
    for key, value in context.items():
        if value is not None:
            message[key] = str(value)
    return message
