from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import interests, ledger, lifecycle
from .exceptions import Forbidden
from .models import RenovationRequest
from .serializers import (
    BidSerializer,
    InspectionInterestSerializer,
    InterestInputSerializer,
    OpenBiddingSerializer,
    RenovationRequestSerializer,
    ScheduleInspectionSerializer,
    SelectContractorSerializer,
)


ADMIN = "ADMIN"
CUSTOMER = "CUSTOMER"

BID_ORDERING = {"total_amount", "-total_amount", "created_at", "-created_at", "timeline_weeks", "-timeline_weeks"}


def admin_only(request, message):
    if request.data.get('user_role') != ADMIN:
        return Response({'error': message}, status=status.HTTP_403_FORBIDDEN)
    return None


class RenovationRequestViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Renovation Request API.

    Status changes go through the lifecycle actions below; the status field
    itself is read-only.
    """

    queryset = RenovationRequest.objects.all()
    serializer_class = RenovationRequestSerializer
    permission_classes = [AllowAny,]

    filterset_fields = [
        'status',
        'customer_id',
        'category',
        'property_type',
        'budget_range',
    ]
    ordering_fields = ['created_at', 'inspection_date', 'bidding_end_date']
    ordering = ['-created_at']

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        renovation_request = serializer.save()

        return Response({
            'message': 'Renovation request created',
            'renovation_request_id': str(renovation_request.id),
            'status': renovation_request.status,
        }, status=status.HTTP_201_CREATED)

    def _respond(self, renovation_request):
        serializer = self.get_serializer(renovation_request)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def advance(self, request, pk=None):
        denied = admin_only(request, 'Only administrators can advance a request manually')
        if denied:
            return denied

        return self._respond(lifecycle.advance_to_inspection_pending(pk))

    @action(detail=True, methods=['post'], url_path='schedule-inspection')
    def schedule_inspection(self, request, pk=None):
        denied = admin_only(request, 'Only administrators can schedule inspections')
        if denied:
            return denied

        serializer = ScheduleInspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        renovation_request = lifecycle.schedule_inspection(
            pk,
            serializer.validated_data['inspection_date'],
            notes=serializer.validated_data['notes'],
        )
        return self._respond(renovation_request)

    @action(detail=True, methods=['post'], url_path='cancel-inspection')
    def cancel_inspection(self, request, pk=None):
        customer_id = request.data.get('customer_id', None)

        if not customer_id:
            return Response(
                {'error': 'customer_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        return self._respond(lifecycle.cancel_inspection(pk, customer_id))

    @action(detail=True, methods=['post'], url_path='open-bidding')
    def open_bidding(self, request, pk=None):
        denied = admin_only(request, 'Only administrators can open bidding')
        if denied:
            return denied

        serializer = OpenBiddingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        renovation_request = lifecycle.open_bidding(
            pk,
            end_date=serializer.validated_data['bidding_end_date'],
        )
        return self._respond(renovation_request)

    @action(detail=True, methods=['post'], url_path='close-bidding')
    def close_bidding(self, request, pk=None):
        denied = admin_only(request, 'Only administrators can close bidding')
        if denied:
            return denied

        return self._respond(lifecycle.close_bidding(pk))

    @action(detail=True, methods=['post'], url_path='select-contractor')
    def select_contractor(self, request, pk=None):
        serializer = SelectContractorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        renovation_request = self.get_object()
        if renovation_request.customer_id != serializer.validated_data['customer_id']:
            raise Forbidden("Only the request owner can select a contractor")

        renovation_request = lifecycle.select_contractor(pk, serializer.validated_data['bid_id'])
        return self._respond(renovation_request)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        user_role = request.data.get('user_role', None)

        if user_role not in [ADMIN, CUSTOMER]:
            return Response(
                {'error': 'Only the customer or an administrator can complete a request'},
                status=status.HTTP_403_FORBIDDEN
            )

        if user_role == CUSTOMER:
            renovation_request = self.get_object()
            if renovation_request.customer_id != request.data.get('customer_id'):
                raise Forbidden("Only the request owner can complete it")

        return self._respond(lifecycle.complete(pk))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        denied = admin_only(request, 'Only administrators can cancel a request')
        if denied:
            return denied

        reason = request.data.get('reason', '')
        return self._respond(lifecycle.cancel(pk, reason=reason))

    @action(detail=True, methods=['get', 'post'])
    def interests(self, request, pk=None):
        if request.method == 'GET':
            participants = interests.list_participants(pk)
            return Response({
                'count': len(participants),
                'participants': InspectionInterestSerializer(participants, many=True).data,
            }, status=status.HTTP_200_OK)

        serializer = InterestInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        interest = interests.set_interest(
            pk,
            serializer.validated_data['contractor_id'],
            serializer.validated_data['will_participate'],
            notes=serializer.validated_data.get('notes'),
        )
        renovation_request = RenovationRequest.objects.get(pk=pk)

        return Response({
            'inspection_interest': InspectionInterestSerializer(interest).data,
            'request_status': renovation_request.status,
        }, status=status.HTTP_200_OK)

    @action(detail=True, methods=['get'])
    def bids(self, request, pk=None):
        bids = ledger.list_bids(pk)

        ordering = request.query_params.get('ordering')
        if ordering in BID_ORDERING:
            bids = bids.order_by(ordering)

        return Response({
            'count': len(bids),
            'bids': BidSerializer(bids, many=True).data,
        }, status=status.HTTP_200_OK)
