from rest_framework import serializers

from . import lifecycle
from .models import RenovationRequest, InspectionInterest, Bid


class RenovationRequestSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = RenovationRequest
        fields = "__all__"
        read_only_fields = [
            "id",
            "status",
            "inspection_date",
            "inspection_notes",
            "bidding_start_date",
            "bidding_end_date",
            "selected_contractor_id",
            "closed_reason",
            "version",
            "created_at",
            "updated_at",
        ]

    def create(self, validated_data):
        return lifecycle.create_request(**validated_data)


class InspectionInterestSerializer(serializers.ModelSerializer):
    class Meta:
        model = InspectionInterest
        fields = "__all__"
        read_only_fields = [
            "id",
            "request",
            "created_at",
            "updated_at",
        ]


class InterestInputSerializer(serializers.Serializer):
    contractor_id = serializers.CharField(max_length=128)
    will_participate = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True)


class BidSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Bid
        fields = "__all__"
        read_only_fields = [
            "id",
            "total_amount",
            "status",
            "withdrawn_at",
            "created_at",
            "updated_at",
        ]


class BidSubmitSerializer(serializers.Serializer):
    # total_amount is not accepted here; the ledger computes it.
    request_id = serializers.UUIDField()
    contractor_id = serializers.CharField(max_length=128)
    contractor_name = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    labor_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    material_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    permit_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    disposal_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    timeline_weeks = serializers.IntegerField()
    start_date = serializers.DateField()
    included_items = serializers.CharField(allow_blank=True)
    excluded_items = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    estimate_file = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ScheduleInspectionSerializer(serializers.Serializer):
    inspection_date = serializers.DateTimeField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OpenBiddingSerializer(serializers.Serializer):
    bidding_end_date = serializers.DateTimeField(required=False, allow_null=True, default=None)


class SelectContractorSerializer(serializers.Serializer):
    bid_id = serializers.UUIDField()
    customer_id = serializers.CharField(max_length=128)
