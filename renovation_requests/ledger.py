import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from . import interests, lifecycle, notifications
from .exceptions import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from .models import Bid, BidStatus, RenovationRequest, RequestStatus


logger = logging.getLogger(__name__)


COST_FIELDS = ("labor_cost", "material_cost", "permit_cost", "disposal_cost")
REQUIRED_COST_FIELDS = ("labor_cost", "material_cost")

MIN_TIMELINE_WEEKS = 1
MAX_TIMELINE_WEEKS = 52

CENTS = Decimal("0.01")

REJECTABLE_STATUSES = frozenset({RequestStatus.BIDDING_OPEN, RequestStatus.BIDDING_CLOSED})


def clean_breakdown(breakdown):
    """
    Normalise the cost breakdown to Decimals. Anything that is not one of
    the four cost components (a client-computed total, for instance) is
    ignored.
    """
    if not isinstance(breakdown, dict):
        raise ValidationError("Cost breakdown must be an object")

    costs = {}
    for field in COST_FIELDS:
        value = breakdown.get(field)
        if value is None:
            if field in REQUIRED_COST_FIELDS:
                raise ValidationError(f"{field} is required")
            value = 0

        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")

        if not amount.is_finite():
            raise ValidationError(f"{field} must be a number")
        if amount < 0:
            raise ValidationError(f"{field} cannot be negative")

        costs[field] = amount.quantize(CENTS)
    return costs


def calculate_total(costs):
    return sum((costs[field] for field in COST_FIELDS), Decimal("0")).quantize(CENTS)


def _clean_start_date(start_date):
    if isinstance(start_date, str):
        try:
            start_date = date.fromisoformat(start_date)
        except ValueError:
            raise ValidationError("start_date must be an ISO date")
    if isinstance(start_date, datetime):
        start_date = start_date.date()
    if not isinstance(start_date, date):
        raise ValidationError("start_date is required")
    if start_date < timezone.localdate():
        raise ValidationError("Start date cannot be in the past")
    return start_date


def _clean_timeline_weeks(timeline_weeks):
    if isinstance(timeline_weeks, bool) or not isinstance(timeline_weeks, int):
        raise ValidationError("timeline_weeks must be an integer")
    if not MIN_TIMELINE_WEEKS <= timeline_weeks <= MAX_TIMELINE_WEEKS:
        raise ValidationError(
            f"timeline_weeks must be between {MIN_TIMELINE_WEEKS} and {MAX_TIMELINE_WEEKS}"
        )
    return timeline_weeks


def _clean_text(value, field, required=False):
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be text")
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required")
    return value


def _get_bid(bid_id):
    try:
        return Bid.objects.select_related("request").get(pk=bid_id)
    except (Bid.DoesNotExist, DjangoValidationError):
        raise NotFound(f"Bid {bid_id} not found")


def submit_bid(
    request_id,
    contractor_id,
    breakdown,
    timeline_weeks,
    start_date,
    included_items,
    excluded_items="",
    notes="",
    estimate_file="",
    contractor_name="",
):
    """
    Create or update the contractor's bid on a request.

    A contractor holds at most one bid per request; submitting again edits
    the existing row (and re-activates it if it had been withdrawn).
    Returns ``(bid, created)``.
    """
    with transaction.atomic():
        renovation_request = lifecycle.lock_request(request_id)
        if renovation_request.status != RequestStatus.BIDDING_OPEN:
            raise InvalidTransition(
                f"Cannot bid on request {renovation_request.pk} in status {renovation_request.status}"
            )

        if not contractor_id:
            raise ValidationError("contractor_id is required")
        costs = clean_breakdown(breakdown)

        fields = dict(
            costs,
            total_amount=calculate_total(costs),
            timeline_weeks=_clean_timeline_weeks(timeline_weeks),
            start_date=_clean_start_date(start_date),
            included_items=_clean_text(included_items, "included_items", required=True),
            excluded_items=_clean_text(excluded_items, "excluded_items"),
            notes=_clean_text(notes, "notes"),
            estimate_file=estimate_file or "",
        )
        if contractor_name:
            fields["contractor_name"] = contractor_name

        if not interests.is_participant(renovation_request.pk, contractor_id):
            raise Forbidden(
                f"Contractor {contractor_id} did not take part in the inspection for request {renovation_request.pk}"
            )

        bid = (
            Bid.objects
            .select_for_update()
            .filter(request=renovation_request, contractor_id=contractor_id)
            .first()
        )

        if bid is None:
            try:
                with transaction.atomic():
                    bid = Bid.objects.create(
                        request=renovation_request,
                        contractor_id=contractor_id,
                        **fields,
                    )
            except IntegrityError:
                raise Conflict(f"Bid for contractor {contractor_id} was submitted concurrently")
            created = True
        else:
            if bid.status != BidStatus.PENDING:
                raise InvalidTransition(f"Cannot edit bid {bid.pk} in status {bid.status}")
            for name, value in fields.items():
                setattr(bid, name, value)
            bid.withdrawn_at = None
            bid.save()
            created = False

        logger.info(
            "request %s: %s bid %s from contractor %s, total %s",
            renovation_request.pk, "new" if created else "updated", bid.pk, contractor_id, bid.total_amount,
        )
        notifications.notify(
            notifications.NEW_BID,
            request_id=str(renovation_request.pk),
            bid_id=str(bid.pk),
            customer_id=renovation_request.customer_id,
            contractor_id=contractor_id,
            total_amount=str(bid.total_amount),
            resubmitted=not created,
        )

    return bid, created


def withdraw_bid(bid_id, contractor_id):
    bid = _get_bid(bid_id)

    with transaction.atomic():
        # request first, then bid: same lock order as select_contractor
        lifecycle.lock_request(bid.request_id)
        bid = Bid.objects.select_for_update().get(pk=bid.pk)

        if bid.contractor_id != contractor_id:
            raise Forbidden("Only the contractor who submitted the bid can withdraw it")
        if not bid.is_active:
            raise InvalidTransition(f"Bid {bid.pk} has already been withdrawn")
        if bid.status != BidStatus.PENDING:
            raise InvalidTransition(f"Cannot withdraw bid {bid.pk} in status {bid.status}")

        bid.withdrawn_at = timezone.now()
        bid.save(update_fields=["withdrawn_at", "updated_at"])

        logger.info("request %s: bid %s withdrawn by contractor %s", bid.request_id, bid.pk, contractor_id)
        notifications.notify(
            notifications.BID_WITHDRAWN,
            request_id=str(bid.request_id),
            bid_id=str(bid.pk),
            contractor_id=contractor_id,
        )
    return bid


def accept_bid(bid_id, customer_id):
    bid = _get_bid(bid_id)
    if bid.request.customer_id != customer_id:
        raise Forbidden("Only the request owner can accept a bid")

    lifecycle.select_contractor(bid.request_id, bid.pk)
    return _get_bid(bid.pk)


def reject_bid(bid_id, customer_id):
    """
    Customer turns down a single pending bid without selecting anyone.
    The request stays in the bidding phase; the bid row is kept.
    """
    bid = _get_bid(bid_id)
    if bid.request.customer_id != customer_id:
        raise Forbidden("Only the request owner can reject a bid")

    with transaction.atomic():
        renovation_request = lifecycle.lock_request(bid.request_id)
        bid = Bid.objects.select_for_update().get(pk=bid.pk)

        if renovation_request.status not in REJECTABLE_STATUSES:
            raise InvalidTransition(
                f"Cannot reject bids on request {renovation_request.pk} in status {renovation_request.status}"
            )
        if not bid.is_active:
            raise InvalidTransition(f"Bid {bid.pk} has been withdrawn")
        if bid.status != BidStatus.PENDING:
            raise InvalidTransition(f"Cannot reject bid {bid.pk} in status {bid.status}")

        bid.status = BidStatus.REJECTED
        bid.save(update_fields=["status", "updated_at"])

        logger.info("request %s: bid %s rejected by customer %s", renovation_request.pk, bid.pk, customer_id)
        notifications.notify(
            notifications.BID_REJECTED,
            request_id=str(renovation_request.pk),
            bid_id=str(bid.pk),
            contractor_id=bid.contractor_id,
        )
    return bid


def list_bids(request_id):
    """
    Active (non-withdrawn) bids on a request, in no particular order.
    """
    try:
        exists = RenovationRequest.objects.filter(pk=request_id).exists()
    except DjangoValidationError:
        exists = False
    if not exists:
        raise NotFound(f"Renovation request {request_id} not found")

    return Bid.objects.filter(request_id=request_id, withdrawn_at__isnull=True)
