"""
Realtime channel registry.

Process-local directory of active subscriber connections, keyed by channel
(typically ``group:<group_id>``) and member id. Delivery is best-effort and
synchronous: no retries, no queueing, no persistence. Consumers that miss
messages are expected to re-fetch state when they reconnect.

The registry never closes transports. Whoever registered a connection is
responsible for closing the underlying stream after removing it.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Optional


logger = logging.getLogger(__name__)


SendFunction = Callable[[Any], None]


@dataclass(eq=False)
class Connection:
    """Handle for one registered subscriber."""

    channel_key: str
    member_id: Hashable
    send: SendFunction
    connected_at: float = field(default_factory=time.monotonic)
    last_seen: float = field(default_factory=time.monotonic)


class ChannelRegistry:
    """
    Channel -> member -> Connection map guarded by a lock.

    Subscriber callables are always invoked outside the lock, on a snapshot
    of the channel, so a callback may safely call back into the registry.
    Messages broadcast by sequential calls reach each subscriber in call
    order.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._channels: Dict[str, Dict[Hashable, Connection]] = {}

    def create_connection(
        self,
        channel_key: str,
        member_id: Hashable,
        send: SendFunction,
    ) -> Connection:
        """
        Register a subscriber, replacing any existing one for the same pair.

        The replaced handle is simply dropped; closing its transport is the
        caller's job.
        """
        now = time.monotonic()
        connection = Connection(
            channel_key=channel_key,
            member_id=member_id,
            send=send,
            connected_at=now,
            last_seen=now,
        )

        with self._lock:
            channel = self._channels.setdefault(channel_key, {})
            replaced = channel.get(member_id)
            channel[member_id] = connection

        if replaced is not None:
            logger.debug("Replaced connection for %s on %s", member_id, channel_key)
        else:
            logger.debug("Connection created for %s on %s", member_id, channel_key)

        return connection

    def remove_connection(
        self,
        channel_key: str,
        member_id: Hashable,
        connection: Optional[Connection] = None,
    ) -> bool:
        """
        Remove a subscriber. Removing an unknown subscriber is a no-op.

        When ``connection`` is given, it is only removed if it is still the
        registered handle, so a replaced stream shutting down late cannot
        evict its successor.

        Returns:
            True if a connection was removed
        """
        with self._lock:
            channel = self._channels.get(channel_key)
            if not channel or member_id not in channel:
                return False
            if connection is not None and channel[member_id] is not connection:
                return False

            del channel[member_id]
            if not channel:
                del self._channels[channel_key]

        logger.debug("Connection removed for %s on %s", member_id, channel_key)
        return True

    def broadcast(
        self,
        channel_key: str,
        message: Any,
        exclude_member_id: Optional[Hashable] = None,
    ) -> int:
        """
        Deliver ``message`` to every subscriber on the channel except one.

        A failing subscriber is logged and skipped; it never prevents
        delivery to the others and never propagates to the caller.

        Returns:
            Number of subscribers the message was delivered to
        """
        with self._lock:
            recipients = [
                connection
                for member_id, connection in self._channels.get(channel_key, {}).items()
                if exclude_member_id is None or member_id != exclude_member_id
            ]

        delivered = 0
        for connection in recipients:
            if self._deliver(connection, message):
                delivered += 1

        logger.debug(
            "Broadcast to %d/%d connections on %s",
            delivered, len(recipients), channel_key
        )
        return delivered

    def send_to_user(self, channel_key: str, member_id: Hashable, message: Any) -> bool:
        """Unicast. No-op when the member has no connection on the channel."""
        with self._lock:
            connection = self._channels.get(channel_key, {}).get(member_id)

        if connection is None:
            return False
        return self._deliver(connection, message)

    def _deliver(self, connection: Connection, message: Any) -> bool:
        try:
            connection.send(message)
        except Exception:
            logger.exception(
                "Failed to deliver message to %s on %s",
                connection.member_id, connection.channel_key
            )
            return False
        return True

    def touch(
        self,
        channel_key: str,
        member_id: Hashable,
        connection: Optional[Connection] = None,
    ) -> None:
        """
        Record activity for a subscriber.

        When ``connection`` is given, only that handle is refreshed, so a
        replaced stream cannot keep its successor looking alive.
        """
        with self._lock:
            current = self._channels.get(channel_key, {}).get(member_id)
            if current is None:
                return
            if connection is not None and current is not connection:
                return
            current.last_seen = time.monotonic()

    def prune_stale(self, max_age: float) -> List[Connection]:
        """
        Drop connections with no activity in the last ``max_age`` seconds.

        Returns:
            The removed connections, so their owners can close transports
        """
        cutoff = time.monotonic() - max_age
        removed = []

        with self._lock:
            for channel_key in list(self._channels):
                channel = self._channels[channel_key]
                for member_id in list(channel):
                    if channel[member_id].last_seen < cutoff:
                        removed.append(channel.pop(member_id))
                if not channel:
                    del self._channels[channel_key]

        if removed:
            logger.info("Pruned %d stale connection(s)", len(removed))
        return removed

    def get_connection(self, channel_key: str, member_id: Hashable) -> Optional[Connection]:
        with self._lock:
            return self._channels.get(channel_key, {}).get(member_id)

    def get_connection_count(self, channel_key: str) -> int:
        with self._lock:
            return len(self._channels.get(channel_key, {}))

    def get_active_channels(self) -> List[str]:
        with self._lock:
            return list(self._channels)

    def cleanup(self) -> None:
        """Drop all state. For test isolation and process shutdown."""
        with self._lock:
            count = sum(len(channel) for channel in self._channels.values())
            self._channels.clear()

        logger.debug("Registry cleaned up (%d connection(s) dropped)", count)
