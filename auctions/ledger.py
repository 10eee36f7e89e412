# auctions/ledger.py
"""
Append-only bid ledger.

Entries are numbered per auction by `sequence`; amounts strictly increase
along that order and the last entry always equals Auction.current_bid.
"""
import logging
from datetime import timedelta

from django.utils import timezone

from .exceptions import AuctionInvariantError
from .models import Bid

logger = logging.getLogger(__name__)


def ledger_tail(auction):
    return Bid.objects.filter(auction=auction).order_by('-sequence').first()


def bid_history(auction):
    return Bid.objects.filter(auction=auction).select_related('bidder').order_by('sequence')


def append_bid(auction, bidder_id, amount, is_autobid=False, now=None):
    """
    Append one accepted bid. Must run inside the auction's critical section.

    The tail is re-read and checked against the record before writing; any
    disagreement is an engine bug and raises AuctionInvariantError.
    """
    tail = ledger_tail(auction)
    created_at = now or timezone.now()

    if tail is None:
        if auction.current_bid is not None:
            _violation(auction, f"current_bid {auction.current_bid} set but ledger is empty")
        if amount < auction.starting_price:
            _violation(auction, f"first bid {amount} below starting price {auction.starting_price}")
        sequence = 1
    else:
        if auction.current_bid != tail.amount:
            _violation(auction, f"current_bid {auction.current_bid} != ledger tail {tail.amount}")
        if amount < tail.amount + auction.bid_increment:
            _violation(auction, f"bid {amount} does not clear tail {tail.amount} + {auction.bid_increment}")
        sequence = tail.sequence + 1
        # bids placed in one call share `now`; keep creation order strict
        created_at = max(created_at, tail.created_at + timedelta(microseconds=1))

    if bidder_id == auction.seller_id:
        _violation(auction, f"seller {bidder_id} reached the ledger")

    return Bid.objects.create(
        auction=auction,
        bidder_id=bidder_id,
        amount=amount,
        sequence=sequence,
        is_autobid=is_autobid,
        created_at=created_at,
    )


def verify_ledger(auction):
    """
    Re-check every ledger law for one auction. Returns a list of problems,
    empty when the ledger is sound.
    """
    problems = []
    previous = None
    for bid in Bid.objects.filter(auction=auction).order_by('sequence'):
        if bid.bidder_id == auction.seller_id:
            problems.append(f"bid #{bid.sequence} placed by the seller")
        if previous is None:
            if bid.amount < auction.starting_price:
                problems.append(f"bid #{bid.sequence} below starting price")
        else:
            if bid.sequence != previous.sequence + 1:
                problems.append(f"gap between #{previous.sequence} and #{bid.sequence}")
            if bid.amount <= previous.amount:
                problems.append(f"bid #{bid.sequence} not above #{previous.sequence}")
            elif bid.amount < previous.amount + auction.bid_increment:
                problems.append(f"bid #{bid.sequence} below minimum increment")
            if bid.created_at <= previous.created_at:
                problems.append(f"bid #{bid.sequence} not timestamped after #{previous.sequence}")
        previous = bid

    tail_amount = previous.amount if previous else None
    if tail_amount != auction.current_bid:
        problems.append(f"current_bid {auction.current_bid} != ledger tail {tail_amount}")
    return problems


def _violation(auction, detail):
    logger.critical("Ledger invariant violated on auction %s: %s", auction.id, detail)
    raise AuctionInvariantError(auction.id, detail)
