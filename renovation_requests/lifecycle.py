"""
Request lifecycle: owns ``RenovationRequest.status`` and the legal moves
between statuses.

Every operation locks the request row, checks the current status, and writes
the new status with a conditional update on ``(status, version)`` so that two
callers racing on the same request resolve to exactly one winner.
"""
import logging
from datetime import datetime, time, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from . import notifications
from .exceptions import Conflict, Forbidden, InvalidTransition, NotFound, ValidationError
from .models import Bid, BidStatus, RenovationRequest, RequestStatus


logger = logging.getLogger(__name__)


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CLOSED})

NON_TERMINAL_STATUSES = frozenset(set(RequestStatus) - TERMINAL_STATUSES)


def status_label(status):
    return RequestStatus(status).label


def selectable_statuses():
    if settings.ALLOW_EARLY_BID_ACCEPTANCE:
        return frozenset({RequestStatus.BIDDING_OPEN, RequestStatus.BIDDING_CLOSED})
    return frozenset({RequestStatus.BIDDING_CLOSED})


def _as_aware(value):
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def lock_request(request_id):
    """
    Read the request row under a row-level lock. Must be called inside
    ``transaction.atomic()``.
    """
    try:
        return RenovationRequest.objects.select_for_update().get(pk=request_id)
    except (RenovationRequest.DoesNotExist, DjangoValidationError):
        raise NotFound(f"Renovation request {request_id} not found")


def _require_status(renovation_request, allowed, action):
    if renovation_request.status not in allowed:
        raise InvalidTransition(
            f"Cannot {action} request {renovation_request.pk} in status {renovation_request.status}"
        )


def _write(renovation_request, to_status, **fields):
    from_status = renovation_request.status
    updated = (
        RenovationRequest.objects
        .filter(pk=renovation_request.pk, status=from_status, version=renovation_request.version)
        .update(
            status=to_status,
            version=F("version") + 1,
            updated_at=timezone.now(),
            **fields,
        )
    )
    if not updated:
        raise Conflict(f"Renovation request {renovation_request.pk} was modified concurrently")

    renovation_request.refresh_from_db()
    logger.info("request %s: %s -> %s", renovation_request.pk, from_status, to_status)
    return renovation_request


def create_request(*, customer_id, **attrs):
    renovation_request = RenovationRequest(customer_id=customer_id, status=RequestStatus.OPEN, **attrs)
    try:
        renovation_request.full_clean()
    except DjangoValidationError as e:
        raise ValidationError(str(e.message_dict))

    renovation_request.save()
    logger.info("request %s created by customer %s", renovation_request.pk, customer_id)
    notifications.notify(
        notifications.NEW_REQUEST,
        request_id=str(renovation_request.pk),
        customer_id=customer_id,
        category=renovation_request.category,
        postal_code=renovation_request.postal_code,
    )
    return renovation_request


def advance_to_inspection_pending(request_id):
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, {RequestStatus.OPEN}, "move to inspection pending")
        _write(renovation_request, RequestStatus.INSPECTION_PENDING)
        notifications.notify(
            notifications.INTEREST_RECORDED,
            request_id=str(renovation_request.pk),
            customer_id=renovation_request.customer_id,
        )
    return renovation_request


def revert_to_open(request_id):
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, {RequestStatus.INSPECTION_PENDING}, "revert to open")
        _write(renovation_request, RequestStatus.OPEN)
    return renovation_request


def schedule_inspection(request_id, inspection_date, notes=""):
    inspection_date = _as_aware(inspection_date)

    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(
            renovation_request,
            {RequestStatus.INSPECTION_PENDING, RequestStatus.INSPECTION_SCHEDULED},
            "schedule inspection for",
        )
        if inspection_date <= timezone.now():
            raise ValidationError("Inspection date must be in the future")

        _write(
            renovation_request,
            RequestStatus.INSPECTION_SCHEDULED,
            inspection_date=inspection_date,
            inspection_notes=notes or "",
        )
        notifications.notify(
            notifications.INSPECTION_SCHEDULED,
            request_id=str(renovation_request.pk),
            customer_id=renovation_request.customer_id,
            inspection_date=inspection_date.isoformat(),
        )
    return renovation_request


def cancel_inspection(request_id, customer_id):
    """
    Customer withdraws a scheduled site visit. The request goes back to
    INSPECTION_PENDING; contractor interest records are kept.
    """
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        if renovation_request.customer_id != customer_id:
            raise Forbidden("Only the request owner can cancel the inspection")
        _require_status(renovation_request, {RequestStatus.INSPECTION_SCHEDULED}, "cancel inspection for")
        _write(
            renovation_request,
            RequestStatus.INSPECTION_PENDING,
            inspection_date=None,
            inspection_notes="",
            bidding_start_date=None,
            bidding_end_date=None,
        )
    return renovation_request


def open_bidding(request_id, end_date=None):
    now = timezone.now()
    if end_date is None:
        end_date = now + timedelta(days=settings.BIDDING_DURATION_DAYS)
    end_date = _as_aware(end_date)

    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, {RequestStatus.INSPECTION_SCHEDULED}, "open bidding for")
        if end_date <= now:
            raise ValidationError("Bidding end date must be in the future")

        _write(
            renovation_request,
            RequestStatus.BIDDING_OPEN,
            bidding_start_date=now,
            bidding_end_date=end_date,
        )
        notifications.notify(
            notifications.BIDDING_STARTED,
            request_id=str(renovation_request.pk),
            bidding_end_date=end_date.isoformat(),
            contractor_ids=list(
                renovation_request.inspection_interests
                .filter(will_participate=True)
                .values_list("contractor_id", flat=True)
            ),
        )
    return renovation_request


def close_bidding(request_id):
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, {RequestStatus.BIDDING_OPEN}, "close bidding for")
        _write(renovation_request, RequestStatus.BIDDING_CLOSED)
        notifications.notify(
            notifications.BIDDING_CLOSED,
            request_id=str(renovation_request.pk),
            customer_id=renovation_request.customer_id,
            bid_count=renovation_request.bids.filter(withdrawn_at__isnull=True).count(),
        )
    return renovation_request


def select_contractor(request_id, bid_id):
    """
    Accept one bid: the bid becomes ACCEPTED, every other active bid on the
    request becomes REJECTED and the request moves to CONTRACTOR_SELECTED,
    all in one transaction.
    """
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, selectable_statuses(), "select a contractor for")

        try:
            bid = Bid.objects.select_for_update().get(pk=bid_id, request=renovation_request)
        except (Bid.DoesNotExist, DjangoValidationError):
            raise NotFound(f"Bid {bid_id} not found on request {request_id}")

        if not bid.is_active:
            raise InvalidTransition(f"Bid {bid.pk} has been withdrawn")
        if bid.status != BidStatus.PENDING:
            raise InvalidTransition(f"Cannot accept bid {bid.pk} in status {bid.status}")

        _write(
            renovation_request,
            RequestStatus.CONTRACTOR_SELECTED,
            selected_contractor_id=bid.contractor_id,
        )

        now = timezone.now()
        Bid.objects.filter(pk=bid.pk).update(status=BidStatus.ACCEPTED, updated_at=now)
        siblings = list(
            Bid.objects
            .select_for_update()
            .filter(request=renovation_request, withdrawn_at__isnull=True, status=BidStatus.PENDING)
            .exclude(pk=bid.pk)
            .values_list("pk", "contractor_id")
        )
        Bid.objects.filter(pk__in=[pk for pk, _ in siblings]).update(status=BidStatus.REJECTED, updated_at=now)
        logger.info(
            "request %s: accepted bid %s, rejected %s other bids", renovation_request.pk, bid.pk, len(siblings),
        )

        notifications.notify(
            notifications.BID_ACCEPTED,
            request_id=str(renovation_request.pk),
            bid_id=str(bid.pk),
            contractor_id=bid.contractor_id,
            customer_id=renovation_request.customer_id,
            total_amount=str(bid.total_amount),
        )
        for sibling_pk, contractor_id in siblings:
            notifications.notify(
                notifications.BID_REJECTED,
                request_id=str(renovation_request.pk),
                bid_id=str(sibling_pk),
                contractor_id=contractor_id,
            )
    return renovation_request


def complete(request_id):
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, {RequestStatus.CONTRACTOR_SELECTED}, "complete")
        _write(renovation_request, RequestStatus.COMPLETED)
        notifications.notify(
            notifications.REQUEST_COMPLETED,
            request_id=str(renovation_request.pk),
            customer_id=renovation_request.customer_id,
            contractor_id=renovation_request.selected_contractor_id,
        )
    return renovation_request


def cancel(request_id, reason=""):
    """
    Close the request from any non-terminal status, CONTRACTOR_SELECTED
    included. Bids and ``selected_contractor_id`` are left as they are, so a
    request closed after selection still shows which bid had been accepted.
    """
    with transaction.atomic():
        renovation_request = lock_request(request_id)
        _require_status(renovation_request, NON_TERMINAL_STATUSES, "cancel")
        _write(renovation_request, RequestStatus.CLOSED, closed_reason=reason or "")
        notifications.notify(
            notifications.REQUEST_CLOSED,
            request_id=str(renovation_request.pk),
            customer_id=renovation_request.customer_id,
            reason=reason or "",
        )
    return renovation_request
