import atexit

from django.apps import AppConfig


class RealtimeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.realtime'
    verbose_name = 'Realtime'

    registry = None

    def ready(self):
        from .registry import ChannelRegistry

        if self.registry is None:
            self.registry = ChannelRegistry()
            atexit.register(self.registry.cleanup)
