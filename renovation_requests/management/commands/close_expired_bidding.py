import logging

from django.core.management.base import BaseCommand
from django.utils import timezone

from renovation_requests import lifecycle
from renovation_requests.exceptions import MarketplaceError
from renovation_requests.models import RenovationRequest, RequestStatus


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Close bidding on requests whose bidding window has ended."

    def handle(self, *args, **options):
        expired = RenovationRequest.objects.filter(
            status=RequestStatus.BIDDING_OPEN,
            bidding_end_date__lt=timezone.now(),
        ).values_list("id", flat=True)

        summary = {"processed": 0, "successful": 0, "errors": 0}

        for request_id in list(expired):
            summary["processed"] += 1
            try:
                lifecycle.close_bidding(request_id)
                summary["successful"] += 1
            except MarketplaceError as e:
                summary["errors"] += 1
                logger.error("close_expired_bidding: request %s skipped: %s", request_id, e.message)

        logger.info("close_expired_bidding completed: %s", summary)
        self.stdout.write(
            "Processed {processed}: {successful} closed, {errors} errors".format(**summary)
        )
