from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/              - List user's groups
    # POST   /api/groups/              - Create group
    # GET    /api/groups/{id}/         - Get group details (members only)
    
    # Custom group actions
    # GET    /api/groups/{id}/members/  - List members in join order
    # POST   /api/groups/{id}/join/     - Join with invite code
    # POST   /api/groups/{id}/leave/    - Leave group
    
    # Additional endpoints
    path('my/', views.my_groups, name='my-groups'),
    
    # Include router URLs
    path('', include(router.urls)),
]
