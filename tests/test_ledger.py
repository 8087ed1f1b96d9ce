from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from renovation_requests import interests, ledger, lifecycle
from renovation_requests.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from renovation_requests.models import Bid, BidStatus, RenovationRequest, RequestStatus
from tests.factories import bid_kwargs


pytestmark = pytest.mark.django_db


@pytest.mark.parametrize("status", [s for s in RequestStatus if s != RequestStatus.BIDDING_OPEN])
def test_submit_requires_open_bidding(bidding_request, status):
    renovation_request = bidding_request()
    RenovationRequest.objects.filter(pk=renovation_request.pk).update(status=status)

    with pytest.raises(InvalidTransition):
        ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())

    assert not Bid.objects.exists()


def test_total_is_computed_server_side(bidding_request):
    renovation_request = bidding_request()
    kwargs = bid_kwargs(labor="1200.50", material=300, permit=0, disposal="49.50")
    kwargs["breakdown"]["total_amount"] = 1

    bid, created = ledger.submit_bid(renovation_request.pk, "contractor-1", **kwargs)

    assert created
    bid.refresh_from_db()
    assert bid.total_amount == Decimal("1550.00")
    assert bid.total_amount == bid.labor_cost + bid.material_cost + bid.permit_cost + bid.disposal_cost
    assert bid.status == BidStatus.PENDING


def test_optional_costs_default_to_zero(bidding_request):
    renovation_request = bidding_request()
    kwargs = bid_kwargs()
    kwargs["breakdown"] = {"labor_cost": 800, "material_cost": 200}

    bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **kwargs)

    assert bid.permit_cost == Decimal("0.00")
    assert bid.total_amount == Decimal("1000.00")


@pytest.mark.parametrize("overrides", [
    {"labor": -1},
    {"material": "-0.01"},
    {"permit": -100},
    {"disposal": "not-a-number"},
    {"labor": None},
    {"timeline_weeks": 0},
    {"timeline_weeks": 53},
    {"timeline_weeks": True},
    {"included_items": "   "},
    {"included_items": ["Demolition", "cabinets"]},
    {"excluded_items": ["Drywall"]},
    {"breakdown": [1000, 500]},
])
def test_submit_validation(bidding_request, overrides):
    renovation_request = bidding_request()

    with pytest.raises(ValidationError):
        ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs(**overrides))


def test_start_date_in_the_past(bidding_request):
    renovation_request = bidding_request()
    yesterday = timezone.localdate() - timedelta(days=1)

    with pytest.raises(ValidationError):
        ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs(start_date=yesterday))


def test_non_participant_cannot_bid(bidding_request):
    renovation_request = bidding_request(contractors=("contractor-1",))

    with pytest.raises(Forbidden):
        ledger.submit_bid(renovation_request.pk, "contractor-2", **bid_kwargs())


def test_resubmission_updates_in_place(bidding_request):
    renovation_request = bidding_request()
    first, created_first = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs(labor=1000))
    second, created_second = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs(labor=2000))

    assert created_first and not created_second
    assert first.pk == second.pk
    assert Bid.objects.filter(request=renovation_request, contractor_id="contractor-1").count() == 1
    assert Bid.objects.get(pk=first.pk).total_amount == Decimal("2650.00")


def test_list_bids_only_active(bidding_request):
    renovation_request = bidding_request(contractors=("contractor-1", "contractor-2"))
    keep, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())
    gone, _ = ledger.submit_bid(renovation_request.pk, "contractor-2", **bid_kwargs())

    ledger.withdraw_bid(gone.pk, "contractor-2")

    assert [b.pk for b in ledger.list_bids(renovation_request.pk)] == [keep.pk]
    assert Bid.objects.filter(pk=gone.pk).exists()


def test_list_bids_can_be_sorted_by_caller(bidding_request):
    contractors = ("contractor-1", "contractor-2", "contractor-3")
    renovation_request = bidding_request(contractors=contractors)
    for contractor_id, labor in zip(contractors, (3000, 1000, 2000)):
        ledger.submit_bid(renovation_request.pk, contractor_id, **bid_kwargs(labor=labor))

    ordered = ledger.list_bids(renovation_request.pk).order_by("total_amount")

    assert [b.contractor_id for b in ordered] == ["contractor-2", "contractor-3", "contractor-1"]


def test_list_bids_unknown_request(db):
    with pytest.raises(NotFound):
        ledger.list_bids("00000000-0000-0000-0000-000000000000")


class TestWithdraw:
    def test_withdraw_pending(self, bidding_request):
        renovation_request = bidding_request()
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())

        bid = ledger.withdraw_bid(bid.pk, "contractor-1")

        assert bid.withdrawn_at is not None
        assert not ledger.list_bids(renovation_request.pk).exists()

    def test_other_contractor_forbidden(self, bidding_request):
        renovation_request = bidding_request(contractors=("contractor-1", "contractor-2"))
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())

        with pytest.raises(Forbidden):
            ledger.withdraw_bid(bid.pk, "contractor-2")

    def test_accepted_bid_cannot_be_withdrawn(self, three_bids):
        renovation_request, bids = three_bids
        lifecycle.select_contractor(renovation_request.pk, bids[0].pk)

        with pytest.raises(InvalidTransition):
            ledger.withdraw_bid(bids[0].pk, bids[0].contractor_id)
        with pytest.raises(InvalidTransition):
            ledger.withdraw_bid(bids[1].pk, bids[1].contractor_id)

    def test_withdraw_twice(self, bidding_request):
        renovation_request = bidding_request()
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())
        ledger.withdraw_bid(bid.pk, "contractor-1")

        with pytest.raises(InvalidTransition):
            ledger.withdraw_bid(bid.pk, "contractor-1")

    def test_resubmit_after_withdrawal_reactivates(self, bidding_request):
        renovation_request = bidding_request()
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())
        ledger.withdraw_bid(bid.pk, "contractor-1")

        again, created = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs(labor=900))

        assert not created
        assert again.pk == bid.pk
        assert again.withdrawn_at is None
        assert ledger.list_bids(renovation_request.pk).count() == 1

    def test_unknown_bid(self, db):
        with pytest.raises(NotFound):
            ledger.withdraw_bid("00000000-0000-0000-0000-000000000000", "contractor-1")


class TestAccept:
    def test_accept_three_bids(self, three_bids):
        renovation_request, bids = three_bids

        accepted = ledger.accept_bid(bids[1].pk, "customer-1")

        assert accepted.status == BidStatus.ACCEPTED
        assert accepted.request.status == RequestStatus.CONTRACTOR_SELECTED
        assert Bid.objects.get(pk=bids[0].pk).status == BidStatus.REJECTED
        assert Bid.objects.get(pk=bids[2].pk).status == BidStatus.REJECTED

    def test_only_owner_can_accept(self, three_bids):
        _, bids = three_bids

        with pytest.raises(Forbidden):
            ledger.accept_bid(bids[0].pk, "customer-2")

        assert Bid.objects.get(pk=bids[0].pk).status == BidStatus.PENDING

    def test_accept_after_withdrawal_loses(self, three_bids):
        renovation_request, bids = three_bids
        ledger.withdraw_bid(bids[0].pk, bids[0].contractor_id)

        with pytest.raises(InvalidTransition):
            ledger.accept_bid(bids[0].pk, "customer-1")

        renovation_request.refresh_from_db()
        assert renovation_request.status == RequestStatus.BIDDING_CLOSED

    def test_withdrawn_sibling_is_not_rejected(self, three_bids):
        _, bids = three_bids
        ledger.withdraw_bid(bids[2].pk, bids[2].contractor_id)

        ledger.accept_bid(bids[0].pk, "customer-1")

        assert Bid.objects.get(pk=bids[2].pk).status == BidStatus.PENDING
        assert Bid.objects.get(pk=bids[1].pk).status == BidStatus.REJECTED

    def test_rejected_siblings_are_notified(self, three_bids, outbox, django_capture_on_commit_callbacks):
        _, bids = three_bids

        with django_capture_on_commit_callbacks(execute=True):
            ledger.accept_bid(bids[0].pk, "customer-1")

        assert [e["event_type"] for e in outbox] == ["BID_ACCEPTED", "BID_REJECTED", "BID_REJECTED"]
        rejected = {e["payload"]["contractor_id"] for e in outbox[1:]}
        assert rejected == {"contractor-2", "contractor-3"}


class TestReject:
    def test_reject_single_bid(self, three_bids, outbox, django_capture_on_commit_callbacks):
        renovation_request, bids = three_bids

        with django_capture_on_commit_callbacks(execute=True):
            bid = ledger.reject_bid(bids[1].pk, "customer-1")

        assert bid.status == BidStatus.REJECTED
        assert Bid.objects.get(pk=bids[0].pk).status == BidStatus.PENDING
        renovation_request.refresh_from_db()
        assert renovation_request.status == RequestStatus.BIDDING_CLOSED
        assert [e["event_type"] for e in outbox] == ["BID_REJECTED"]
        assert outbox[0]["payload"]["contractor_id"] == "contractor-2"

    def test_rejected_bid_stays_listed(self, three_bids):
        renovation_request, bids = three_bids

        ledger.reject_bid(bids[0].pk, "customer-1")

        assert ledger.list_bids(renovation_request.pk).count() == 3

    def test_reject_during_bidding(self, bidding_request):
        renovation_request = bidding_request()
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())

        assert ledger.reject_bid(bid.pk, "customer-1").status == BidStatus.REJECTED
        with pytest.raises(InvalidTransition):
            ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())

    def test_only_owner_can_reject(self, three_bids):
        _, bids = three_bids

        with pytest.raises(Forbidden):
            ledger.reject_bid(bids[0].pk, "customer-2")

        assert Bid.objects.get(pk=bids[0].pk).status == BidStatus.PENDING

    def test_reject_twice(self, three_bids):
        _, bids = three_bids
        ledger.reject_bid(bids[0].pk, "customer-1")

        with pytest.raises(InvalidTransition):
            ledger.reject_bid(bids[0].pk, "customer-1")

    def test_withdrawn_bid_cannot_be_rejected(self, three_bids):
        _, bids = three_bids
        ledger.withdraw_bid(bids[0].pk, bids[0].contractor_id)

        with pytest.raises(InvalidTransition):
            ledger.reject_bid(bids[0].pk, "customer-1")

    def test_reject_after_selection(self, three_bids):
        renovation_request, bids = three_bids
        ledger.accept_bid(bids[0].pk, "customer-1")

        with pytest.raises(InvalidTransition):
            ledger.reject_bid(bids[0].pk, "customer-1")
        assert Bid.objects.get(pk=bids[0].pk).status == BidStatus.ACCEPTED

    def test_accept_does_not_renotify_rejected_bid(self, three_bids, outbox, django_capture_on_commit_callbacks):
        _, bids = three_bids
        ledger.reject_bid(bids[2].pk, "customer-1")

        with django_capture_on_commit_callbacks(execute=True):
            ledger.accept_bid(bids[0].pk, "customer-1")

        rejected = [e["payload"]["bid_id"] for e in outbox if e["event_type"] == "BID_REJECTED"]
        assert rejected == [str(bids[1].pk)]

    def test_unknown_bid(self, db):
        with pytest.raises(NotFound):
            ledger.reject_bid("00000000-0000-0000-0000-000000000000", "customer-1")


def test_bid_notifications(bidding_request, outbox, django_capture_on_commit_callbacks):
    renovation_request = bidding_request()

    with django_capture_on_commit_callbacks(execute=True):
        bid, _ = ledger.submit_bid(renovation_request.pk, "contractor-1", **bid_kwargs())
        ledger.withdraw_bid(bid.pk, "contractor-1")

    assert [e["event_type"] for e in outbox] == ["NEW_BID", "BID_WITHDRAWN"]
    assert outbox[0]["payload"]["total_amount"] == "1650.00"
    assert outbox[0]["payload"]["customer_id"] == "customer-1"


def test_end_to_end_scenario(make_request, future_date):
    renovation_request = make_request()
    assert renovation_request.status == RequestStatus.OPEN

    interests.set_interest(renovation_request.pk, "C1", True)
    renovation_request.refresh_from_db()
    assert renovation_request.status == RequestStatus.INSPECTION_PENDING

    renovation_request = lifecycle.schedule_inspection(renovation_request.pk, future_date)
    assert renovation_request.status == RequestStatus.INSPECTION_SCHEDULED

    renovation_request = lifecycle.open_bidding(renovation_request.pk, future_date + timedelta(days=7))
    assert renovation_request.status == RequestStatus.BIDDING_OPEN

    bid, _ = ledger.submit_bid(
        renovation_request.pk,
        "C1",
        **bid_kwargs(labor=1000, material=500, permit=100, disposal=50),
    )
    assert bid.total_amount == Decimal("1650")

    lifecycle.close_bidding(renovation_request.pk)
    bid = ledger.accept_bid(bid.pk, "customer-1")

    assert bid.status == BidStatus.ACCEPTED
    assert bid.request.status == RequestStatus.CONTRACTOR_SELECTED
