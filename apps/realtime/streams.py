"""
Server-Sent Events transport for the channel registry.

An EventStream registers a queue-backed send function with the registry and
turns queued envelopes into ``text/event-stream`` frames. It owns its own
connection: when the client goes away (the WSGI server closes the
generator) or the connection is replaced, the stream unregisters itself.
"""

import json
import logging
import queue

from django.core.serializers.json import DjangoJSONEncoder
from rest_framework.renderers import BaseRenderer

from .messages import MessageType, build_message


logger = logging.getLogger(__name__)


def format_event(message) -> str:
    """Encode an envelope as one SSE frame."""
    return f"data: {json.dumps(message, cls=DjangoJSONEncoder)}\n\n"


class EventStream:
    """Iterable of SSE frames for one (channel, member) subscription."""

    def __init__(self, registry, channel_key, member_id, *, heartbeat_seconds=30):
        self.registry = registry
        self.channel_key = channel_key
        self.member_id = member_id
        self.heartbeat_seconds = heartbeat_seconds
        self.queue = queue.Queue()
        self.connection = None

    def open(self):
        self.connection = self.registry.create_connection(
            self.channel_key, self.member_id, self.queue.put
        )
        return self

    def close(self):
        if self.connection is not None:
            self.registry.remove_connection(
                self.channel_key, self.member_id, self.connection
            )
            self.connection = None

    def is_current(self) -> bool:
        """False once this stream was replaced, pruned or closed."""
        return (
            self.connection is not None
            and self.registry.get_connection(self.channel_key, self.member_id) is self.connection
        )

    def __iter__(self):
        if self.connection is None:
            self.open()

        try:
            yield format_event(build_message(
                MessageType.CONNECTION,
                {'message': 'Connected to group updates'},
            ))

            while True:
                try:
                    message = self.queue.get(timeout=self.heartbeat_seconds)
                except queue.Empty:
                    if not self.is_current():
                        logger.debug(
                            "Stream for %s on %s superseded, closing",
                            self.member_id, self.channel_key
                        )
                        break
                    message = build_message(MessageType.PING)

                yield format_event(message)
                if self.connection is not None:
                    self.registry.touch(self.channel_key, self.member_id, self.connection)
        finally:
            self.close()


class EventStreamRenderer(BaseRenderer):
    """
    Lets DRF negotiate ``Accept: text/event-stream``.

    Successful streams bypass rendering (they are StreamingHttpResponse);
    only error payloads such as 403s pass through here.
    """

    media_type = 'text/event-stream'
    format = 'sse'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b''
        return format_event(data).encode(self.charset)
