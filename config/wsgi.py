"""
WSGI config for the Shopping Ledger project.

It exposes the WSGI callable as a module-level variable named ``application``.

Realtime channels are process-local, so deploy with a threaded worker
(e.g. ``gunicorn --worker-class gthread``) and a single process per
instance; each SSE stream holds one thread.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
