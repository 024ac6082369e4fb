from django.db import connection
from django.http import JsonResponse

from apps.realtime import get_channel_registry


def health_check(request):
    """Liveness check: database reachable, registry loaded."""
    try:
        connection.ensure_connection()
        database = 'ok'
    except Exception:
        database = 'unavailable'

    registry = get_channel_registry()
    status = 200 if database == 'ok' else 503

    return JsonResponse({
        'status': 'ok' if status == 200 else 'degraded',
        'database': database,
        'active_channels': len(registry.get_active_channels()),
    }, status=status)


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)
