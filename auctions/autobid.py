# auctions/autobid.py
"""
Auto-bid (proxy bid) resolution.

Runs inside the triggering bid's critical section, right after the bid was
applied, and keeps placing proxy bids until no standing instruction can
profitably outbid the current leader.

Ranking between instructions: higher ceiling first, then the one
registered earlier. Each round takes the best-ranked instruction that is
not the leader (the challenger) and compares it with the best-ranked
remaining instruction of anyone else (the rival, possibly the leader's own
proxy):

* challenger outranks the rival: the challenger bids just enough to clear
  the rival's ceiling, capped at its own ceiling;
* the rival outranks the challenger: the rival bids just enough to clear
  the challenger's ceiling, capped at its own ceiling, which leaves the
  challenger exhausted on the next round.

Either way the next round exhausts every other instruction, so the final
price is min(second ceiling + increment, top ceiling) and the top-ranked
instruction ends up leading. Ties at the exact ceiling go to the earlier
instruction.
"""
import logging

from django.utils import timezone

from .engine import apply_bid
from .events import record_event
from .exceptions import AuctionInvariantError
from .models import AuctionEventKind, AutoBid
from .validators import validate_bid

logger = logging.getLogger(__name__)


def _rank(auto_bid):
    return (-auto_bid.max_bid_amount, auto_bid.created_at, auto_bid.id)


def _outranks(first, second):
    return _rank(first) < _rank(second)


def _deactivate(auction, auto_bid, reason, required=None):
    auto_bid.is_active = False
    auto_bid.save(update_fields=['is_active', 'updated_at'])
    record_event(auction, AuctionEventKind.AUTOBID_EXHAUSTED, {
        'auto_bid_id': auto_bid.id,
        'max_bid_amount': str(auto_bid.max_bid_amount),
        'required_bid': str(required) if required is not None else None,
        'reason': reason,
    }, recipient_id=auto_bid.user_id)
    logger.info(
        "Auto-bid %s of user %s on auction %s deactivated (%s)",
        auto_bid.id, auto_bid.user_id, auction.id, reason
    )


def _place_proxy_bid(auction, auto_bid, amount, now):
    decision = validate_bid(auction, amount, auto_bid.user_id, now)
    if not decision.accepted:
        raise AuctionInvariantError(
            auction.id,
            f"proxy bid {amount} for auto-bid {auto_bid.id} rejected: {decision.reason}"
        )
    bid = apply_bid(auction, auto_bid.user_id, amount, now, is_autobid=True)
    auto_bid.current_proxy_bid = bid.amount
    auto_bid.save(update_fields=['current_proxy_bid', 'updated_at'])
    return bid


def resolve(auction, triggering_bidder_id=None, now=None):
    """
    Escalate active auto-bids of `auction` until stable.

    `auction` must be the locked row of the current critical section.
    Returns the proxy bids placed, in ledger order.
    """
    now = now or timezone.now()
    placed = []

    active_count = AutoBid.objects.filter(auction=auction, is_active=True).count()
    if not active_count:
        return placed

    # each round either places a bid or exhausts instructions, and a placed
    # bid exhausts everyone else on the following round
    for _ in range(2 * active_count + 2):
        active = sorted(AutoBid.objects.filter(auction=auction, is_active=True), key=_rank)
        leader_id = auction.highest_bidder_id
        minimum = auction.minimum_bid

        challengers = []
        for auto_bid in active:
            if auto_bid.user_id == leader_id:
                continue
            if minimum > auto_bid.max_bid_amount:
                _deactivate(auction, auto_bid, 'ceiling_exhausted', required=minimum)
                continue
            decision = validate_bid(auction, minimum, auto_bid.user_id, now)
            if not decision.accepted:
                _deactivate(auction, auto_bid, decision.reason, required=minimum)
                continue
            challengers.append(auto_bid)

        if not challengers:
            logger.debug(
                "Auto-bid resolution on auction %s (trigger %s) settled at %s after %s proxy bid(s)",
                auction.id, triggering_bidder_id, auction.current_bid, len(placed)
            )
            return placed

        challenger = challengers[0]
        rivals = [ab for ab in active if ab.is_active and ab.pk != challenger.pk]
        rival = rivals[0] if rivals else None

        if rival is None:
            bidder, amount = challenger, minimum
        elif _outranks(challenger, rival):
            bidder = challenger
            amount = max(minimum, min(rival.max_bid_amount + auction.bid_increment, challenger.max_bid_amount))
        else:
            # only the leader's own proxy can outrank the best challenger
            bidder = rival
            amount = max(minimum, min(challenger.max_bid_amount + auction.bid_increment, rival.max_bid_amount))

        placed.append(_place_proxy_bid(auction, bidder, amount, now))

    raise AuctionInvariantError(auction.id, "auto-bid resolution did not converge")
