from decimal import Decimal

from django.db.models import Sum
from rest_framework import mixins, viewsets, status, serializers as drf_serializers
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from apps.groups.services import GroupNotFoundError
from .models import Purchase, Settlement
from .serializers import (
    PurchaseSerializer,
    PurchaseListSerializer,
    PurchaseSummarySerializer,
    SettlementSerializer,
    SettlementResultSerializer,
    # Input serializers
    PurchaseFilterSerializer,
    PurchaseCreateSerializer,
    SplitRequestSerializer,
)
from .services import (
    record_purchase,
    preview_split,
    save_split,
    complete_settlement,
    get_outstanding_settlements,
    get_purchase_summary,
    # Exceptions
    InvalidPurchaseError,
    InvalidSplitError,
    NotGroupMemberError,
    InsufficientPermissionsError,
    SettlementAlreadyCompletedError,
)
from .permissions import (
    IsGroupMemberForPurchase,
    IsGroupMemberForSettlement,
    CanCompleteSettlement,
)


# Response serializers for API documentation
class ValidationErrorsResponseSerializer(drf_serializers.Serializer):
    validation_errors = drf_serializers.DictField(child=drf_serializers.CharField())


class OutstandingSettlementsResponseSerializer(drf_serializers.Serializer):
    total_owed = drf_serializers.DecimalField(max_digits=12, decimal_places=2)
    total_due = drf_serializers.DecimalField(max_digits=12, decimal_places=2)
    count = drf_serializers.IntegerField()
    settlements = SettlementSerializer(many=True)


class PurchasePagination(PageNumberPagination):
    """Custom pagination for purchases."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _split_response(result):
    """Engine validation errors are a 400 with the errors keyed by field."""
    if not result.is_valid:
        return Response(
            {'validation_errors': result.validation_errors},
            status=status.HTTP_400_BAD_REQUEST
        )
    return Response(SettlementResultSerializer(result).data)


class PurchaseViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for group purchases.

    Purchases are immutable once recorded; only their split can change.

    list: Get purchases from the user's groups (filterable)
    create: Record a purchase for a group
    retrieve: Get a specific purchase
    """

    queryset = Purchase.objects.select_related(
        'group',
        'purchased_by',
    ).prefetch_related('items')
    serializer_class = PurchaseSerializer
    permission_classes = [IsAuthenticated, IsGroupMemberForPurchase]
    pagination_class = PurchasePagination

    def get_queryset(self):
        """Filter purchases using input serializer validation."""
        queryset = super().get_queryset().filter(
            group__memberships__user=self.request.user
        )

        if self.action != 'list':
            return queryset

        filter_serializer = PurchaseFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if 'group' in params:
            queryset = queryset.filter(group_id=params['group'])
        if 'purchased_by' in params:
            queryset = queryset.filter(purchased_by_id=params['purchased_by'])
        if 'date_from' in params:
            queryset = queryset.filter(purchased_at__date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(purchased_at__date__lte=params['date_to'])

        return queryset

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return PurchaseListSerializer
        elif self.action == 'create':
            return PurchaseCreateSerializer
        elif self.action in ['preview_split', 'split']:
            return SplitRequestSerializer
        return PurchaseSerializer

    @extend_schema(request=PurchaseCreateSerializer, responses={201: PurchaseSerializer})
    def create(self, request, *args, **kwargs):
        """Record a purchase paid by the current user."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            purchase = record_purchase(
                group_id=data['group'],
                purchased_by=request.user,
                total_amount=data['total_amount'],
                items=data.get('items', []),
                note=data.get('note', ''),
                purchased_at=data.get('purchased_at'),
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except InvalidPurchaseError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        output_serializer = PurchaseSerializer(purchase, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        request=SplitRequestSerializer,
        responses={200: SettlementResultSerializer, 400: ValidationErrorsResponseSerializer},
    )
    @action(detail=True, methods=['post'], url_path='split/preview')
    def preview_split(self, request, pk=None):
        """
        Compute the settlements a split would produce without saving.

        POST /api/purchases/{id}/split/preview/
        """
        purchase = self.get_object()

        serializer = SplitRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = preview_split(purchase=purchase, split=serializer.validated_data['split'])
        except (InvalidPurchaseError, InvalidSplitError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return _split_response(result)

    @extend_schema(
        request=SplitRequestSerializer,
        responses={200: SettlementResultSerializer, 400: ValidationErrorsResponseSerializer},
    )
    @action(detail=True, methods=['post'])
    def split(self, request, pk=None):
        """
        Save a split and replace the purchase's settlements.

        POST /api/purchases/{id}/split/
        Body: {"split_method": "equal|quantity|custom", "split_rules": [...]}
        """
        purchase = self.get_object()

        serializer = SplitRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = save_split(
                purchase_id=purchase.id,
                split=serializer.validated_data['split'],
                user=request.user
            )
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except (InvalidPurchaseError, InvalidSplitError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return _split_response(result)

    @extend_schema(responses={200: SettlementSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def settlements(self, request, pk=None):
        """
        Get the saved settlement transfers, in computed order.

        GET /api/purchases/{id}/settlements/
        """
        purchase = self.get_object()
        settlements = purchase.settlements.select_related('from_member', 'to_member')
        serializer = SettlementSerializer(settlements, many=True)
        return Response(serializer.data)

    @extend_schema(responses={200: PurchaseSummarySerializer})
    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        """
        Get detailed summary of purchase and settlement status.

        GET /api/purchases/{id}/summary/
        """
        purchase = self.get_object()
        summary = get_purchase_summary(purchase_id=purchase.id)
        serializer = PurchaseSummarySerializer(summary)
        return Response(serializer.data)


class SettlementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for settlement transfers.

    list: Get settlements from the user's groups
    retrieve: Get a specific settlement
    complete: Mark a settlement as completed
    """

    queryset = Settlement.objects.select_related(
        'purchase__group',
        'from_member',
        'to_member',
    )
    serializer_class = SettlementSerializer
    permission_classes = [IsAuthenticated, IsGroupMemberForSettlement]
    pagination_class = PurchasePagination

    def get_queryset(self):
        return super().get_queryset().filter(
            purchase__group__memberships__user=self.request.user
        ).order_by('-created_at', 'position')

    def get_permissions(self):
        if self.action == 'complete':
            return [IsAuthenticated(), IsGroupMemberForSettlement(), CanCompleteSettlement()]
        return super().get_permissions()

    @extend_schema(request=None, responses={200: SettlementSerializer})
    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """
        Mark a settlement transfer as completed.

        POST /api/purchases/settlements/{id}/complete/
        """
        settlement = self.get_object()

        try:
            settlement = complete_settlement(settlement_id=settlement.id, user=request.user)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except SettlementAlreadyCompletedError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SettlementSerializer(settlement).data)


@extend_schema(
    responses={200: OutstandingSettlementsResponseSerializer},
    description="Get all pending settlements the current user owes or is owed.",
    tags=['purchases'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_outstanding_settlements(request):
    """Get all outstanding settlements for current user."""
    settlements = get_outstanding_settlements(user=request.user)

    total_owed = settlements.filter(from_member=request.user).aggregate(
        total=Sum('amount')
    )['total']
    total_due = settlements.filter(to_member=request.user).aggregate(
        total=Sum('amount')
    )['total']

    serializer = SettlementSerializer(settlements, many=True)

    return Response({
        'total_owed': total_owed or Decimal('0.00'),
        'total_due': total_due or Decimal('0.00'),
        'count': settlements.count(),
        'settlements': serializer.data,
    })
