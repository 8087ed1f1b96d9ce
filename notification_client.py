import json
import logging
from concurrent.futures import ThreadPoolExecutor

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


def build_session(*, retries=3):
    """
    Session that retries transient failures of the notification service
    """
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[502, 503, 504],
        allowed_methods=["POST"],
    )
    session = requests.Session()
    session.mount("http://", HTTPAdapter(max_retries=retry))
    session.mount("https://", HTTPAdapter(max_retries=retry))
    return session


def post_event(*, event_type, payload, url=None, session=None):
    url = url or settings.NOTIFICATION_WEBHOOK_URL
    session = session or build_session()

    body = json.dumps({"event_type": event_type, "payload": payload}, cls=DjangoJSONEncoder)
    headers = {
        'content-type': 'application/json'
    }

    try:
        response = session.post(
            url,
            data=body,
            headers=headers,
            timeout=settings.NOTIFICATION_TIMEOUT,
        )
        response.raise_for_status()
        return response

    except requests.exceptions.Timeout:
        raise NotificationError("Notification service request timed out")

    except requests.exceptions.ConnectionError as e:
        raise NotificationError(f"Failed to connect to notification service: {str(e)}")

    except requests.exceptions.RequestException as e:
        raise NotificationError(f"Notification service request failed: {str(e)}")


class WebhookBackend:
    """
    Delivers events to the notification service on a background worker so
    the caller never waits on the HTTP round trip.
    """

    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="notifications")

    def send(self, event_type, payload):
        if not settings.NOTIFICATION_WEBHOOK_URL:
            logger.info("No notification webhook configured, dropping %s", event_type)
            return None
        return self.executor.submit(self.deliver, event_type, payload)

    def deliver(self, event_type, payload):
        try:
            post_event(event_type=event_type, payload=payload)
            logger.info("Delivered %s notification", event_type)
            return True
        except NotificationError:
            logger.exception("Failed to deliver %s notification", event_type)
            return False


class LocmemBackend:
    """
    Keeps sent events in memory. Used by the test suite.
    """

    outbox = []

    def send(self, event_type, payload):
        LocmemBackend.outbox.append({"event_type": event_type, "payload": payload})
