import logging
from functools import partial

from django.conf import settings
from django.db import transaction
from django.utils.module_loading import import_string


logger = logging.getLogger(__name__)


NEW_REQUEST          = "NEW_REQUEST"
INTEREST_RECORDED    = "INTEREST_RECORDED"
INSPECTION_SCHEDULED = "INSPECTION_SCHEDULED"
BIDDING_STARTED      = "BIDDING_STARTED"
BIDDING_CLOSED       = "BIDDING_CLOSED"
NEW_BID              = "NEW_BID"
BID_WITHDRAWN        = "BID_WITHDRAWN"
BID_ACCEPTED         = "BID_ACCEPTED"
BID_REJECTED         = "BID_REJECTED"
REQUEST_COMPLETED    = "REQUEST_COMPLETED"
REQUEST_CLOSED       = "REQUEST_CLOSED"


def get_backend():
    return import_string(settings.NOTIFICATION_BACKEND)()


def dispatch(event_type, payload):
    # Delivery problems belong to the dispatcher, never to the caller.
    try:
        get_backend().send(event_type, payload)
    except Exception:
        logger.exception("Failed to dispatch %s notification", event_type)


def notify(event_type, **payload):
    """
    Schedule a notification for after the current transaction commits.
    """
    transaction.on_commit(partial(dispatch, event_type, payload))
