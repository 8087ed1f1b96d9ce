from django.contrib import admin
from .models import RenovationRequest, InspectionInterest, Bid


@admin.register(RenovationRequest)
class RenovationRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'status', 'category', 'postal_code', 'inspection_date', 'bidding_end_date']
    list_filter = ['status', 'category', 'property_type', 'created_at']
    search_fields = ['id', 'customer_id', 'postal_code', 'address']
    # Status and the dates tied to it only move through the lifecycle actions.
    readonly_fields = [
        'customer_id',
        'status',
        'inspection_date',
        'inspection_notes',
        'bidding_start_date',
        'bidding_end_date',
        'selected_contractor_id',
        'closed_reason',
        'version',
    ]
    ordering = ['-created_at']


@admin.register(InspectionInterest)
class InspectionInterestAdmin(admin.ModelAdmin):
    list_display = ['id', 'request', 'contractor_id', 'will_participate', 'updated_at']
    list_filter = ['will_participate', 'created_at']
    search_fields = ['request__id', 'contractor_id']
    readonly_fields = ['request', 'contractor_id', 'will_participate']
    ordering = ['created_at']


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ['id', 'request', 'contractor_id', 'total_amount', 'status', 'withdrawn_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'request__id', 'contractor_id', 'contractor_name']
    # Costs and the total are only written by the ledger.
    readonly_fields = [
        'request',
        'contractor_id',
        'labor_cost',
        'material_cost',
        'permit_cost',
        'disposal_cost',
        'total_amount',
        'status',
        'withdrawn_at',
    ]
    ordering = ['-created_at']
