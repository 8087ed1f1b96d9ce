from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator
from django.db import models
import uuid


class RequestStatus(models.TextChoices):
    OPEN                 = "OPEN", "Open"
    INSPECTION_PENDING   = "INSPECTION_PENDING", "Inspection Pending"
    INSPECTION_SCHEDULED = "INSPECTION_SCHEDULED", "Inspection Scheduled"
    BIDDING_OPEN         = "BIDDING_OPEN", "Bidding Open"
    BIDDING_CLOSED       = "BIDDING_CLOSED", "Bidding Closed"
    CONTRACTOR_SELECTED  = "CONTRACTOR_SELECTED", "Contractor Selected"
    COMPLETED            = "COMPLETED", "Completed"
    CLOSED               = "CLOSED", "Closed"

class Category(models.TextChoices):
    KITCHEN  = "KITCHEN", "Kitchen"
    BATHROOM = "BATHROOM", "Bathroom"
    BASEMENT = "BASEMENT", "Basement"
    FLOORING = "FLOORING", "Flooring"
    PAINTING = "PAINTING", "Painting"
    OTHER    = "OTHER", "Other"

class PropertyType(models.TextChoices):
    DETACHED_HOUSE = "DETACHED_HOUSE", "Detached House"
    TOWNHOUSE      = "TOWNHOUSE", "Townhouse"
    CONDO          = "CONDO", "Condo"
    COMMERCIAL     = "COMMERCIAL", "Commercial Real Estate"

class BudgetRange(models.TextChoices):
    UNDER_50K     = "UNDER_50K", "Under $50K"
    RANGE_50_100K = "RANGE_50_100K", "$50K - $100K"
    OVER_100K     = "OVER_100K", "Over $100K"

class Timeline(models.TextChoices):
    ASAP            = "ASAP", "As soon as possible"
    WITHIN_1MONTH   = "WITHIN_1MONTH", "Within 1 month"
    WITHIN_3MONTHS  = "WITHIN_3MONTHS", "Within 3 months"
    PLANNING        = "PLANNING", "Planning stage"

class BidStatus(models.TextChoices):
    PENDING  = "PENDING", "Pending"
    ACCEPTED = "ACCEPTED", "Accepted"
    REJECTED = "REJECTED", "Rejected"


postal_code_validator = RegexValidator(
    regex=r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$",
    message="Invalid Canadian postal code",
)

MAX_PHOTOS = 5


def validate_photos(value):
    if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
        raise ValidationError("photos must be a list of strings")
    if len(value) > MAX_PHOTOS:
        raise ValidationError(f"Maximum {MAX_PHOTOS} photos allowed")


class RenovationRequest(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer_id         = models.CharField(max_length=128)
    category            = models.CharField(max_length=16, choices=Category.choices)
    property_type       = models.CharField(max_length=16, choices=PropertyType.choices, default=PropertyType.DETACHED_HOUSE)
    budget_range        = models.CharField(max_length=16, choices=BudgetRange.choices)
    timeline            = models.CharField(max_length=16, choices=Timeline.choices)
    postal_code         = models.CharField(max_length=7, validators=[postal_code_validator])
    address             = models.CharField(max_length=255)
    description         = models.TextField()
    photos              = models.JSONField(default=list, blank=True, validators=[validate_photos])
    status              = models.CharField(max_length=24, choices=RequestStatus.choices, default=RequestStatus.OPEN)
    inspection_date     = models.DateTimeField(null=True, blank=True)
    inspection_notes    = models.TextField(blank=True)
    bidding_start_date  = models.DateTimeField(null=True, blank=True)
    bidding_end_date    = models.DateTimeField(null=True, blank=True)
    selected_contractor_id = models.CharField(max_length=128, null=True, blank=True)
    closed_reason       = models.TextField(blank=True)
    version             = models.PositiveIntegerField(default=0)
    created_at          = models.DateTimeField(auto_now_add=True)
    updated_at          = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.get_category_display()} - {self.postal_code} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in (RequestStatus.COMPLETED, RequestStatus.CLOSED)


class InspectionInterest(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request = models.ForeignKey(RenovationRequest, on_delete=models.CASCADE, related_name="inspection_interests")
    contractor_id    = models.CharField(max_length=128)
    will_participate = models.BooleanField(default=False)
    notes            = models.TextField(blank=True)
    created_at       = models.DateTimeField(auto_now_add=True)
    updated_at       = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["request", "contractor_id"],
                name="unique_interest_per_contractor",
            ),
        ]

    def __str__(self):
        return f"{self.contractor_id} -> {self.request_id} ({self.will_participate})"


class Bid(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request = models.ForeignKey(RenovationRequest, on_delete=models.CASCADE, related_name="bids")
    contractor_id   = models.CharField(max_length=128)
    contractor_name = models.CharField(max_length=128, blank=True)
    labor_cost      = models.DecimalField(max_digits=12, decimal_places=2)
    material_cost   = models.DecimalField(max_digits=12, decimal_places=2)
    permit_cost     = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    disposal_cost   = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount    = models.DecimalField(max_digits=12, decimal_places=2)
    timeline_weeks  = models.PositiveSmallIntegerField()
    start_date      = models.DateField()
    included_items  = models.TextField()
    excluded_items  = models.TextField(blank=True)
    notes           = models.TextField(blank=True)
    estimate_file   = models.CharField(max_length=255, blank=True)
    status          = models.CharField(max_length=16, choices=BidStatus.choices, default=BidStatus.PENDING)
    withdrawn_at    = models.DateTimeField(null=True, blank=True)
    created_at      = models.DateTimeField(auto_now_add=True)
    updated_at      = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["request", "contractor_id"],
                name="unique_bid_per_contractor",
            ),
        ]

    def __str__(self):
        return f"Bid {self.id} - {self.contractor_id} - {self.total_amount}"

    @property
    def is_active(self):
        return self.withdrawn_at is None
