from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import ledger
from .models import Bid
from .serializers import BidSerializer, BidSubmitSerializer


class BidViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Bid.objects.filter(withdrawn_at__isnull=True).order_by("-created_at")
    serializer_class = BidSerializer
    permission_classes = [AllowAny,]

    filterset_fields = ['request', 'contractor_id', 'status']
    ordering_fields = ['created_at', 'total_amount', 'timeline_weeks']

    def create(self, request, *args, **kwargs):
        serializer = BidSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        bid, created = ledger.submit_bid(
            data['request_id'],
            data['contractor_id'],
            breakdown={field: data.get(field) for field in ledger.COST_FIELDS},
            timeline_weeks=data['timeline_weeks'],
            start_date=data['start_date'],
            included_items=data['included_items'],
            excluded_items=data['excluded_items'],
            notes=data['notes'],
            estimate_file=data['estimate_file'],
            contractor_name=data['contractor_name'],
        )

        return Response({
            'message': 'Bid submitted successfully' if created else 'Bid updated successfully',
            'bid': BidSerializer(bid).data,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def withdraw(self, request, pk=None):
        contractor_id = request.data.get('contractor_id', None)

        if not contractor_id:
            return Response(
                {'error': 'contractor_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        bid = ledger.withdraw_bid(pk, contractor_id)
        return Response({
            'message': 'Bid withdrawn',
            'bid': BidSerializer(bid).data,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        customer_id = request.data.get('customer_id', None)

        if not customer_id:
            return Response(
                {'error': 'customer_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        bid = ledger.accept_bid(pk, customer_id)
        return Response({
            'message': 'Bid accepted',
            'bid': BidSerializer(bid).data,
            'request_status': bid.request.status,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        customer_id = request.data.get('customer_id', None)

        if not customer_id:
            return Response(
                {'error': 'customer_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        bid = ledger.reject_bid(pk, customer_id)
        return Response({
            'message': 'Bid rejected',
            'bid': BidSerializer(bid).data,
        }, status=status.HTTP_200_OK)
