from django.conf import settings
from django.http import StreamingHttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, OpenApiResponse

from apps.groups.models import Group
from apps.realtime import get_channel_registry
from .messages import group_channel
from .permissions import IsGroupMemberForChannel
from .streams import EventStream, EventStreamRenderer


# Response serializers for API documentation
class ChannelStatusSerializer(serializers.Serializer):
    channel = serializers.CharField()
    connections = serializers.IntegerField()


class ActiveChannelsResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    channels = ChannelStatusSerializer(many=True)


class GroupEventStreamView(APIView):
    """
    Subscribe to a group's realtime events via Server-Sent Events.

    GET /api/realtime/groups/{group_id}/events/

    The stream starts with a ``connection`` envelope, then relays every
    envelope broadcast on the group's channel, with a ``ping`` after each
    heartbeat interval of silence. Reconnecting replaces the previous
    stream for the same member.
    """

    permission_classes = [IsAuthenticated, IsGroupMemberForChannel]
    renderer_classes = [JSONRenderer, EventStreamRenderer]

    @extend_schema(
        responses={200: OpenApiResponse(description='text/event-stream')},
        tags=['realtime'],
    )
    def get(self, request, group_id):
        group = get_object_or_404(Group, id=group_id)
        self.check_object_permissions(request, group)

        registry = get_channel_registry()
        registry.prune_stale(settings.REALTIME['STALE_AFTER_SECONDS'])

        stream = EventStream(
            registry,
            group_channel(group.id),
            str(request.user.id),
            heartbeat_seconds=settings.REALTIME['HEARTBEAT_SECONDS'],
        ).open()

        response = StreamingHttpResponse(iter(stream), content_type='text/event-stream')
        response['Cache-Control'] = 'no-cache'
        response['X-Accel-Buffering'] = 'no'
        return response


@extend_schema(
    responses={200: ActiveChannelsResponseSerializer},
    description="List active realtime channels and their connection counts (staff only).",
    tags=['realtime'],
)
@api_view(['GET'])
@permission_classes([IsAdminUser])
def active_channels(request):
    """Operational view of the process registry."""
    registry = get_channel_registry()
    channels = [
        {'channel': key, 'connections': registry.get_connection_count(key)}
        for key in sorted(registry.get_active_channels())
    ]

    return Response({
        'count': len(channels),
        'channels': channels,
    })
