from django.db.models import Q
from django.http import Http404
from rest_framework import mixins, status, viewsets, serializers as drf_serializers
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, extend_schema_view

from .exceptions import PayloadInvalidError, ShipmentNotFoundError
from .models import Shipment, ShipmentPayment
from .permissions import CanRecordPayments
from .serializers import (
    PaymentCreateInputSerializer,
    PaymentFilterSerializer,
    PaymentSnapshotSerializer,
    ShipmentFilterSerializer,
    ShipmentListSerializer,
    ShipmentPaymentSerializer,
    ShipmentSerializer,
)
from .services import build_shipment_snapshot, get_payment_guard


# Response serializers for API documentation
class PaymentCreatedResponseSerializer(drf_serializers.Serializer):
    ok = drf_serializers.BooleanField()
    payment = ShipmentPaymentSerializer()


class SnapshotResponseSerializer(drf_serializers.Serializer):
    ok = drf_serializers.BooleanField()
    shipment_id = drf_serializers.UUIDField()
    snapshot = PaymentSnapshotSerializer()


class LedgerPagination(PageNumberPagination):
    """Pagination for shipments and payments."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@extend_schema_view(
    list=extend_schema(tags=['shipments'], parameters=[ShipmentFilterSerializer]),
    retrieve=extend_schema(tags=['shipments']),
)
class ShipmentViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read access to shipments.

    list: Shipments, newest purchase first (filter by status, search by code/name)
    retrieve: One shipment with its cost components and items
    payment_snapshot: Current cost and payment figures
    payments: Payments recorded against the shipment
    """

    queryset = Shipment.objects.select_related('created_by')
    permission_classes = [IsAuthenticated]
    pagination_class = LedgerPagination

    def get_queryset(self):
        queryset = super().get_queryset()

        if self.action == 'list':
            filter_serializer = ShipmentFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            params = filter_serializer.validated_data

            if 'status' in params:
                queryset = queryset.filter(status=params['status'])
            search = params.get('search')
            if search:
                queryset = queryset.filter(
                    Q(shipment_code__icontains=search) |
                    Q(shipment_name__icontains=search)
                )
        elif self.action == 'retrieve':
            queryset = queryset.prefetch_related('items')

        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return ShipmentListSerializer
        return ShipmentSerializer

    def get_object(self):
        try:
            return super().get_object()
        except Http404:
            raise ShipmentNotFoundError(details={'shipment_id': str(self.kwargs.get('pk'))})

    @extend_schema(
        responses={200: SnapshotResponseSerializer},
        description="Known total cost, amount paid per currency and the remaining allowance. "
                    "Recovers the cost from line items when no cost fields are set; nothing is saved.",
        tags=['shipments'],
    )
    @action(detail=True, methods=['get'], url_path='payment-snapshot')
    def payment_snapshot(self, request, pk=None):
        """
        GET /api/shipments/{id}/payment-snapshot/
        """
        shipment = self.get_object()
        snapshot = build_shipment_snapshot(shipment)
        return Response({
            'ok': True,
            'shipment_id': str(shipment.pk),
            'snapshot': PaymentSnapshotSerializer(snapshot).data,
        })

    @extend_schema(
        responses={200: ShipmentPaymentSerializer(many=True)},
        description="Payments recorded against this shipment, newest first.",
        tags=['shipments'],
    )
    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        """
        GET /api/shipments/{id}/payments/
        """
        shipment = self.get_object()
        payments = shipment.payments.select_related('shipment', 'created_by')

        page = self.paginate_queryset(payments)
        if page is not None:
            serializer = ShipmentPaymentSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = ShipmentPaymentSerializer(payments, many=True)
        return Response(serializer.data)


@extend_schema_view(
    list=extend_schema(tags=['payments'], parameters=[PaymentFilterSerializer]),
    retrieve=extend_schema(tags=['payments']),
)
class PaymentViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """
    Shipment payments.

    list: All payments (filter by shipment, currency, date range)
    retrieve: One payment
    create: Record a payment through the overpayment guard
    """

    queryset = ShipmentPayment.objects.select_related('shipment', 'created_by')
    serializer_class = ShipmentPaymentSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = LedgerPagination

    def get_permissions(self):
        if self.action == 'create':
            return [IsAuthenticated(), CanRecordPayments()]
        return super().get_permissions()

    def get_queryset(self):
        """Filter payments using input serializer validation."""
        queryset = super().get_queryset()
        if self.action != 'list':
            return queryset

        filter_serializer = PaymentFilterSerializer(data=self.request.query_params)
        if not filter_serializer.is_valid():
            raise PayloadInvalidError.from_serializer_errors(filter_serializer.errors)
        params = filter_serializer.validated_data

        if 'shipment' in params:
            queryset = queryset.filter(shipment_id=params['shipment'])
        if 'currency' in params:
            queryset = queryset.filter(currency=params['currency'])
        if 'date_from' in params:
            queryset = queryset.filter(payment_date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(payment_date__lte=params['date_to'])

        return queryset

    @extend_schema(
        request=PaymentCreateInputSerializer,
        responses={201: PaymentCreatedResponseSerializer},
        description="Record a payment. Rejected with PAYMENT_OVERPAY (409) when it would "
                    "take the total paid above the shipment's known cost.",
        tags=['payments'],
    )
    def create(self, request):
        """
        POST /api/payments/
        """
        input_serializer = PaymentCreateInputSerializer(data=request.data)
        if not input_serializer.is_valid():
            raise PayloadInvalidError.from_serializer_errors(input_serializer.errors)

        payload = dict(input_serializer.validated_data)
        shipment_id = payload.pop('shipment_id')

        payment = get_payment_guard().submit_payment(
            shipment_id=shipment_id,
            payload=payload,
            user=request.user,
        )

        return Response({
            'ok': True,
            'payment': ShipmentPaymentSerializer(payment).data,
        }, status=status.HTTP_201_CREATED)
