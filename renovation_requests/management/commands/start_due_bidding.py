import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from renovation_requests import interests, lifecycle
from renovation_requests.exceptions import MarketplaceError
from renovation_requests.models import RenovationRequest, RequestStatus


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Open bidding on requests whose inspection date has passed. "
        "Requests with no participating contractors are closed instead."
    )

    def handle(self, *args, **options):
        now = timezone.now()
        due = RenovationRequest.objects.filter(
            status=RequestStatus.INSPECTION_SCHEDULED,
            inspection_date__lte=now,
        ).values_list("id", flat=True)

        summary = {"processed": 0, "successful": 0, "closed": 0, "errors": 0}

        for request_id in list(due):
            summary["processed"] += 1
            try:
                if interests.count_participants(request_id) > 0:
                    lifecycle.open_bidding(request_id)
                    summary["successful"] += 1
                else:
                    lifecycle.cancel(request_id, reason="No participating contractors")
                    summary["closed"] += 1
            except MarketplaceError as e:
                summary["errors"] += 1
                logger.error("start_due_bidding: request %s skipped: %s", request_id, e.message)

        logger.info("start_due_bidding completed: %s", summary)
        self.stdout.write(
            "Processed {processed}: {successful} opened, {closed} closed, {errors} errors".format(**summary)
        )
