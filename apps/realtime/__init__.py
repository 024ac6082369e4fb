"""
Realtime App - Group Event Fan-out

Keeps group members' shopping list, purchase and chat views consistent by
pushing change notifications to every connected member of a group.

Architecture:
- Registry: ChannelRegistry (channel -> member -> connection)
- Messages: envelope builder and message types
- Publishers: broadcast helpers used by other apps' services
- Streams/Views: Server-Sent Events transport

The registry is created when the app is loaded (RealtimeConfig.ready) and
torn down at interpreter exit.
"""


def get_channel_registry():
    """Return the process-wide ChannelRegistry owned by the realtime app."""
    from django.apps import apps

    return apps.get_app_config('realtime').registry
