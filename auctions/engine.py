# auctions/engine.py
"""
Critical-section primitives shared by the bidding services and the
auto-bid resolver.

Every mutation of one auction's bidding state happens between
`auction_critical_section` entering and leaving: the auction row is
locked with SELECT ... FOR UPDATE inside a transaction, so concurrent
callers on the same auction run one after another and each sees the
state left by the previous one. Different auctions never share a lock.
"""
import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import OperationalError, transaction

from .events import record_event
from .exceptions import AuctionBusyError
from .ledger import append_bid
from .models import Auction, AuctionEventKind

logger = logging.getLogger(__name__)


def _set_lock_timeout():
    connection = transaction.get_connection()
    if connection.vendor == 'postgresql':
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{settings.AUCTION_LOCK_TIMEOUT_MS}ms"],
            )


def lock_auction(auction_id):
    _set_lock_timeout()
    return Auction.objects.select_for_update().get(pk=auction_id)


@contextmanager
def auction_critical_section(auction_id):
    """
    Yield the locked Auction row inside a transaction.

    A lock that cannot be taken within AUCTION_LOCK_TIMEOUT_MS surfaces as
    AuctionBusyError (`retry_later`), which callers report as transient.
    """
    try:
        with transaction.atomic():
            auction = lock_auction(auction_id)
            yield auction
    except OperationalError as exc:
        logger.warning("Auction %s lock contention: %s", auction_id, exc)
        raise AuctionBusyError(auction_id) from exc


def apply_extension(auction, now):
    """
    Anti-sniping: a bid with less than the extension window left resets
    end_time to now + extension duration. Resetting, never adding, keeps a
    burst of late bids from pushing the end further than one duration past
    the latest of them.
    """
    if auction.end_time - now >= auction.extension_window:
        return None
    new_end = now + auction.extension_duration
    if new_end <= auction.end_time:
        return None

    previous_end = auction.end_time
    auction.end_time = new_end
    auction.extension_count += 1
    auction.last_extended_at = now
    logger.info(
        "Auction %s extended from %s to %s",
        auction.id, previous_end.isoformat(), new_end.isoformat()
    )
    return previous_end


def apply_bid(auction, bidder_id, amount, now, is_autobid=False):
    """
    Record one already-validated bid: ledger append, record update,
    extension policy and the resulting events.
    """
    previous_bidder_id = auction.highest_bidder_id

    bid = append_bid(auction, bidder_id, amount, is_autobid=is_autobid, now=now)
    auction.current_bid = bid.amount
    auction.highest_bidder_id = bidder_id
    previous_end = apply_extension(auction, now)
    auction.save(update_fields=[
        'current_bid', 'highest_bidder', 'end_time',
        'extension_count', 'last_extended_at', 'updated_at',
    ])

    if previous_end is not None:
        record_event(auction, AuctionEventKind.AUCTION_EXTENDED, {
            'previous_end_time': previous_end.isoformat(),
            'end_time': auction.end_time.isoformat(),
            'bid_sequence': bid.sequence,
            'extension_count': auction.extension_count,
        })

    record_event(auction, AuctionEventKind.BID_ACCEPTED, {
        'bid_id': bid.id,
        'bid_sequence': bid.sequence,
        'bidder_id': bidder_id,
        'amount': str(bid.amount),
        'is_autobid': is_autobid,
        'minimum_bid': str(auction.minimum_bid),
        'end_time': auction.end_time.isoformat(),
    })

    if previous_bidder_id is not None and previous_bidder_id != bidder_id:
        record_event(auction, AuctionEventKind.OUTBID, {
            'bid_sequence': bid.sequence,
            'amount': str(bid.amount),
            'minimum_bid': str(auction.minimum_bid),
        }, recipient_id=previous_bidder_id)

    logger.info(
        "Accepted %sbid %s on auction %s by user %s (#%s)",
        'auto-' if is_autobid else '', bid.amount, auction.id, bidder_id, bid.sequence
    )
    return bid
