from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'purchases'

# Router for ViewSets
# Note: settlements must be registered BEFORE empty prefix to avoid URL conflicts
router = DefaultRouter()
router.register(r'settlements', views.SettlementViewSet, basename='settlement')
router.register(r'', views.PurchaseViewSet, basename='purchase')

urlpatterns = [
    # Purchase ViewSet routes
    # GET    /api/purchases/                      - List purchases
    # POST   /api/purchases/                      - Record purchase
    # GET    /api/purchases/{id}/                 - Get purchase details

    # Custom purchase actions
    # POST   /api/purchases/{id}/split/preview/   - Compute split without saving
    # POST   /api/purchases/{id}/split/           - Save split, replace settlements
    # GET    /api/purchases/{id}/settlements/     - Saved settlements
    # GET    /api/purchases/{id}/summary/         - Settlement summary

    # Settlement routes
    # GET    /api/purchases/settlements/                 - List settlements
    # GET    /api/purchases/settlements/{id}/            - Get settlement
    # POST   /api/purchases/settlements/{id}/complete/   - Mark completed

    # Additional endpoints
    path('my_outstanding/', views.my_outstanding_settlements, name='my-outstanding'),

    # Include router URLs
    path('', include(router.urls)),
]
