from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from notification_client import LocmemBackend
from renovation_requests import interests, ledger, lifecycle
from tests.factories import bid_kwargs, request_attrs


@pytest.fixture(autouse=True)
def outbox(settings):
    settings.NOTIFICATION_BACKEND = "notification_client.LocmemBackend"
    settings.ALLOW_EARLY_BID_ACCEPTANCE = False
    settings.REVERT_TO_OPEN_WHEN_NO_PARTICIPANTS = True
    settings.BIDDING_DURATION_DAYS = 7
    LocmemBackend.outbox = []
    return LocmemBackend.outbox


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def make_request(db):
    def _make(customer_id="customer-1", **overrides):
        return lifecycle.create_request(customer_id=customer_id, **request_attrs(**overrides))
    return _make


@pytest.fixture
def open_request(make_request):
    return make_request()


@pytest.fixture
def future_date():
    return timezone.now() + timedelta(days=3)


@pytest.fixture
def scheduled_request(make_request, future_date):
    def _make(contractors=("contractor-1",), customer_id="customer-1"):
        renovation_request = make_request(customer_id=customer_id)
        for contractor_id in contractors:
            interests.set_interest(renovation_request.pk, contractor_id, True)
        return lifecycle.schedule_inspection(renovation_request.pk, future_date, notes="Side door entrance")
    return _make


@pytest.fixture
def bidding_request(scheduled_request):
    def _make(contractors=("contractor-1",), customer_id="customer-1"):
        renovation_request = scheduled_request(contractors=contractors, customer_id=customer_id)
        return lifecycle.open_bidding(renovation_request.pk)
    return _make


@pytest.fixture
def three_bids(bidding_request):
    """
    A BIDDING_CLOSED request with three pending bids.
    """
    contractors = ("contractor-1", "contractor-2", "contractor-3")
    renovation_request = bidding_request(contractors=contractors)
    bids = [
        ledger.submit_bid(renovation_request.pk, contractor_id, **bid_kwargs(labor=1000 + 100 * i))[0]
        for i, contractor_id in enumerate(contractors)
    ]
    renovation_request = lifecycle.close_bidding(renovation_request.pk)
    return renovation_request, bids

