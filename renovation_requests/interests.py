import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from . import lifecycle
from .exceptions import Conflict, InvalidTransition, NotFound, ValidationError
from .models import InspectionInterest, RenovationRequest, RequestStatus


logger = logging.getLogger(__name__)


INTEREST_STATUSES = frozenset({
    RequestStatus.OPEN,
    RequestStatus.INSPECTION_PENDING,
    RequestStatus.INSPECTION_SCHEDULED,
})


def set_interest(request_id, contractor_id, will_participate, notes=None):
    """
    Record whether a contractor will attend the site inspection.

    The first participating contractor moves an OPEN request to
    INSPECTION_PENDING. Withdrawing the last participant from an
    INSPECTION_PENDING request moves it back to OPEN when
    REVERT_TO_OPEN_WHEN_NO_PARTICIPANTS is enabled.

    ``notes`` is only overwritten when given.
    """
    if not contractor_id:
        raise ValidationError("contractor_id is required")
    if not isinstance(will_participate, bool):
        raise ValidationError("will_participate must be a boolean")

    with transaction.atomic():
        renovation_request = lifecycle.lock_request(request_id)
        if renovation_request.status not in INTEREST_STATUSES:
            raise InvalidTransition(
                f"Cannot change inspection interest for request {renovation_request.pk} "
                f"in status {renovation_request.status}"
            )

        try:
            with transaction.atomic():
                interest, created = InspectionInterest.objects.select_for_update().get_or_create(
                    request=renovation_request,
                    contractor_id=contractor_id,
                    defaults={"will_participate": will_participate, "notes": notes or ""},
                )
        except IntegrityError:
            raise Conflict(f"Inspection interest for {contractor_id} was recorded concurrently")

        if not created:
            interest.will_participate = will_participate
            update_fields = ["will_participate", "updated_at"]
            if notes is not None:
                interest.notes = notes
                update_fields.append("notes")
            interest.save(update_fields=update_fields)

        logger.info(
            "request %s: contractor %s will_participate=%s",
            renovation_request.pk, contractor_id, will_participate,
        )

        if will_participate and renovation_request.status == RequestStatus.OPEN:
            lifecycle.advance_to_inspection_pending(renovation_request.pk)
        elif (
            not will_participate
            and renovation_request.status == RequestStatus.INSPECTION_PENDING
            and settings.REVERT_TO_OPEN_WHEN_NO_PARTICIPANTS
            and count_participants(renovation_request.pk) == 0
        ):
            lifecycle.revert_to_open(renovation_request.pk)

    return interest


def _participants(request_id):
    try:
        exists = RenovationRequest.objects.filter(pk=request_id).exists()
    except DjangoValidationError:
        exists = False
    if not exists:
        raise NotFound(f"Renovation request {request_id} not found")
    return InspectionInterest.objects.filter(request_id=request_id, will_participate=True)


def list_participants(request_id):
    return _participants(request_id).order_by("created_at", "id")


def count_participants(request_id):
    return _participants(request_id).count()


def is_participant(request_id, contractor_id):
    return InspectionInterest.objects.filter(
        request_id=request_id,
        contractor_id=contractor_id,
        will_participate=True,
    ).exists()
