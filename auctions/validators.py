# auctions/validators.py
"""
Bid acceptance rules.

Pure decisions over a snapshot of the auction record: nothing here reads
the database or mutates state, so the engine can call it under the row
lock and tests can call it with plain objects.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import models
from django.utils import timezone

from .models import AuctionStatus


class RejectionReason(models.TextChoices):
    AUCTION_NOT_ACTIVE = 'auction_not_active', 'Auction Not Active'
    SELLER_CANNOT_BID = 'seller_cannot_bid', 'Seller Cannot Bid'
    BID_TOO_LOW = 'bid_too_low', 'Bid Too Low'


REJECTION_MESSAGES = {
    RejectionReason.AUCTION_NOT_ACTIVE: {
        'ar': "المزاد غير نشط حالياً",
        'en': "Auction is not active.",
    },
    RejectionReason.SELLER_CANNOT_BID: {
        'ar': "لا يمكن للبائع المزايدة على مزاده",
        'en': "Seller cannot bid on their own auction.",
    },
    RejectionReason.BID_TOO_LOW: {
        'ar': "الحد الأدنى للمزايدة هو {minimum}",
        'en': "Bid must be at least {minimum}.",
    },
}


@dataclass(frozen=True)
class BidDecision:
    accepted: bool
    reason: Optional[str] = None
    minimum_bid: Optional[Decimal] = None

    def message(self, lang='en'):
        if self.accepted:
            return ''
        return REJECTION_MESSAGES[self.reason][lang].format(minimum=self.minimum_bid)


ACCEPTED = BidDecision(accepted=True)


def minimum_acceptable(current_bid, starting_price, bid_increment):
    if current_bid is None:
        return starting_price
    return current_bid + bid_increment


def validate_bid(auction, amount, bidder_id, now=None) -> BidDecision:
    """
    Decide whether `bidder_id` may bid `amount` on `auction` right now.

    Rules are checked in order: live auction, not the seller, at least the
    minimum (starting price for the first bid, current bid plus increment
    after that). There is no upper bound; ceilings only constrain auto-bids.
    """
    now = now or timezone.now()

    if auction.status != AuctionStatus.ACTIVE or now >= auction.end_time:
        return BidDecision(False, RejectionReason.AUCTION_NOT_ACTIVE)

    if bidder_id == auction.seller_id:
        return BidDecision(False, RejectionReason.SELLER_CANNOT_BID)

    minimum = minimum_acceptable(auction.current_bid, auction.starting_price, auction.bid_increment)
    if Decimal(amount) < minimum:
        return BidDecision(False, RejectionReason.BID_TOO_LOW, minimum)

    return ACCEPTED
