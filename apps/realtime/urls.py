from django.urls import path
from . import views

app_name = 'realtime'

urlpatterns = [
    # GET /api/realtime/groups/{group_id}/events/ - SSE stream of group events
    path(
        'groups/<uuid:group_id>/events/',
        views.GroupEventStreamView.as_view(),
        name='group-events'
    ),

    # GET /api/realtime/channels/ - Active channels (staff)
    path('channels/', views.active_channels, name='active-channels'),
]
