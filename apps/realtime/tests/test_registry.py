from unittest.mock import patch
from apps.realtime import get_channel_registry


CHANNEL = 'group:1'


class TestConnections:
    """Registering and removing subscribers."""

    def test_create_connection(self, registry):
        connection = registry.create_connection(CHANNEL, 'x', lambda message: None)

        assert connection.channel_key == CHANNEL
        assert connection.member_id == 'x'
        assert registry.get_connection(CHANNEL, 'x') is connection
        assert registry.get_connection_count(CHANNEL) == 1
        assert registry.get_active_channels() == [CHANNEL]

    def test_reregister_replaces(self, registry):
        first, second = [], []
        registry.create_connection(CHANNEL, 'x', first.append)
        registry.create_connection(CHANNEL, 'x', second.append)

        registry.broadcast(CHANNEL, 'hello')

        assert registry.get_connection_count(CHANNEL) == 1
        assert first == []
        assert second == ['hello']

    def test_remove_prunes_empty_channel(self, registry):
        registry.create_connection(CHANNEL, 'x', lambda message: None)
        registry.create_connection(CHANNEL, 'y', lambda message: None)

        assert registry.remove_connection(CHANNEL, 'x') is True
        assert registry.get_active_channels() == [CHANNEL]

        assert registry.remove_connection(CHANNEL, 'y') is True
        assert CHANNEL not in registry.get_active_channels()
        assert registry.get_connection_count(CHANNEL) == 0

    def test_remove_unknown_is_noop(self, registry):
        assert registry.remove_connection(CHANNEL, 'nobody') is False

        registry.create_connection(CHANNEL, 'x', lambda message: None)
        assert registry.remove_connection(CHANNEL, 'nobody') is False
        assert registry.remove_connection(CHANNEL, 'x') is True
        assert registry.remove_connection(CHANNEL, 'x') is False

    def test_stale_handle_does_not_evict_successor(self, registry):
        old = registry.create_connection(CHANNEL, 'x', lambda message: None)
        new = registry.create_connection(CHANNEL, 'x', lambda message: None)

        assert registry.remove_connection(CHANNEL, 'x', old) is False
        assert registry.get_connection(CHANNEL, 'x') is new

        assert registry.remove_connection(CHANNEL, 'x', new) is True

    def test_channels_are_independent(self, registry):
        registry.create_connection('group:1', 'x', lambda message: None)
        registry.create_connection('group:2', 'x', lambda message: None)

        registry.remove_connection('group:1', 'x')

        assert registry.get_active_channels() == ['group:2']

    def test_cleanup(self, registry):
        registry.create_connection('group:1', 'x', lambda message: None)
        registry.create_connection('group:2', 'y', lambda message: None)

        registry.cleanup()

        assert registry.get_active_channels() == []


class TestBroadcast:
    """Fan-out to subscribers."""

    def test_exclusion(self, registry):
        inbox_x, inbox_y = [], []
        registry.create_connection(CHANNEL, 'x', inbox_x.append)
        registry.create_connection(CHANNEL, 'y', inbox_y.append)

        delivered = registry.broadcast(CHANNEL, {'type': 'ping'}, exclude_member_id='x')

        assert delivered == 1
        assert inbox_x == []
        assert inbox_y == [{'type': 'ping'}]

    def test_broadcast_to_empty_channel(self, registry):
        assert registry.broadcast('group:none', 'hello') == 0

    def test_failing_subscriber_is_isolated(self, registry):
        inbox = []

        def broken(message):
            raise ConnectionResetError('client went away')

        registry.create_connection(CHANNEL, 'broken', broken)
        registry.create_connection(CHANNEL, 'ok', inbox.append)

        with patch('apps.realtime.registry.logger') as logger:
            delivered = registry.broadcast(CHANNEL, 'hello')

        assert delivered == 1
        assert inbox == ['hello']
        logger.exception.assert_called_once()

    def test_call_order_preserved(self, registry):
        inbox = []
        registry.create_connection(CHANNEL, 'x', inbox.append)

        for n in range(5):
            registry.broadcast(CHANNEL, n)

        assert inbox == [0, 1, 2, 3, 4]

    def test_callback_may_reenter_registry(self, registry):
        """A subscriber that unsubscribes itself while being delivered to."""
        def leave(message):
            registry.remove_connection(CHANNEL, 'x')

        registry.create_connection(CHANNEL, 'x', leave)

        assert registry.broadcast(CHANNEL, 'bye') == 1
        assert registry.get_active_channels() == []


class TestSendToUser:
    """Unicast delivery."""

    def test_send_to_user(self, registry):
        inbox_x, inbox_y = [], []
        registry.create_connection(CHANNEL, 'x', inbox_x.append)
        registry.create_connection(CHANNEL, 'y', inbox_y.append)

        assert registry.send_to_user(CHANNEL, 'y', 'psst') is True
        assert inbox_x == []
        assert inbox_y == ['psst']

    def test_send_to_missing_user(self, registry):
        assert registry.send_to_user(CHANNEL, 'ghost', 'psst') is False

    def test_send_to_failing_user(self, registry):
        def broken(message):
            raise OSError('broken pipe')

        registry.create_connection(CHANNEL, 'x', broken)

        assert registry.send_to_user(CHANNEL, 'x', 'psst') is False


class TestStaleConnections:
    """touch and prune_stale."""

    def test_prune_stale(self, registry):
        with patch('apps.realtime.registry.time.monotonic', return_value=100.0):
            registry.create_connection(CHANNEL, 'idle', lambda message: None)
        with patch('apps.realtime.registry.time.monotonic', return_value=150.0):
            registry.create_connection(CHANNEL, 'active', lambda message: None)

        with patch('apps.realtime.registry.time.monotonic', return_value=170.0):
            removed = registry.prune_stale(60)

        assert [connection.member_id for connection in removed] == ['idle']
        assert registry.get_connection(CHANNEL, 'idle') is None
        assert registry.get_connection_count(CHANNEL) == 1

    def test_touch_keeps_connection_alive(self, registry):
        with patch('apps.realtime.registry.time.monotonic', return_value=100.0):
            registry.create_connection(CHANNEL, 'x', lambda message: None)
        with patch('apps.realtime.registry.time.monotonic', return_value=150.0):
            registry.touch(CHANNEL, 'x')

        with patch('apps.realtime.registry.time.monotonic', return_value=170.0):
            removed = registry.prune_stale(60)

        assert removed == []
        assert registry.get_connection(CHANNEL, 'x').last_seen == 150.0

    def test_prune_removes_empty_channels(self, registry):
        with patch('apps.realtime.registry.time.monotonic', return_value=0.0):
            registry.create_connection(CHANNEL, 'x', lambda message: None)

        with patch('apps.realtime.registry.time.monotonic', return_value=1000.0):
            registry.prune_stale(60)

        assert registry.get_active_channels() == []

    def test_touch_with_replaced_handle_is_ignored(self, registry):
        with patch('apps.realtime.registry.time.monotonic', return_value=100.0):
            old = registry.create_connection(CHANNEL, 'x', lambda message: None)
            registry.create_connection(CHANNEL, 'x', lambda message: None)
        with patch('apps.realtime.registry.time.monotonic', return_value=150.0):
            registry.touch(CHANNEL, 'x', old)

        assert registry.get_connection(CHANNEL, 'x').last_seen == 100.0

    def test_touch_with_current_handle(self, registry):
        with patch('apps.realtime.registry.time.monotonic', return_value=100.0):
            connection = registry.create_connection(CHANNEL, 'x', lambda message: None)
        with patch('apps.realtime.registry.time.monotonic', return_value=150.0):
            registry.touch(CHANNEL, 'x', connection)

        assert connection.last_seen == 150.0

    def test_touch_unknown_is_noop(self, registry):
        registry.touch(CHANNEL, 'ghost')

        assert registry.get_active_channels() == []


class TestAppRegistry:
    """The registry owned by the realtime app."""

    def test_same_instance(self, channel_registry):
        assert get_channel_registry() is channel_registry
