# auctions/services.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db.models import F
from django.utils import timezone

from .autobid import resolve
from .engine import apply_bid, auction_critical_section
from .events import record_event, schedule_delivery
from .exceptions import AuctionBusyError, AuctionCannotCancelError, AutoBidRejectedError
from .models import Auction, AuctionEventKind, AuctionStatus, AutoBid, TERMINAL_STATUSES
from .validators import RejectionReason, validate_bid

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


@dataclass
class BidResult:
    accepted: bool
    current_bid: Optional[Decimal]
    minimum_bid: Decimal
    highest_bidder_id: Optional[int]
    end_time: object
    reason: Optional[str] = None
    message_ar: str = ''
    message_en: str = ''
    bid: object = None
    auto_bids_placed: int = 0

    @classmethod
    def from_auction(cls, auction, **kwargs):
        return cls(
            current_bid=auction.current_bid,
            minimum_bid=auction.minimum_bid,
            highest_bidder_id=auction.highest_bidder_id,
            end_time=auction.end_time,
            **kwargs
        )


def place_bid(auction_id: int, bidder, amount) -> BidResult:
    """
    Try to record one manual bid.

    Validation failures come back as a rejected BidResult and leave the
    auction untouched. An accepted bid is followed, in the same critical
    section, by auto-bid resolution, so the returned current_bid may
    already be higher than `amount`.

    Raises AuctionBusyError when the auction lock is not obtained in time.
    """
    amount = Decimal(amount).quantize(CENTS)

    with auction_critical_section(auction_id) as auction:
        now = timezone.now()
        _activate_if_due(auction, now)
        decision = validate_bid(auction, amount, bidder.id, now)
        if not decision.accepted:
            logger.info(
                "Rejected bid %s on auction %s by user %s: %s",
                amount, auction_id, bidder.id, decision.reason
            )
            return BidResult.from_auction(
                auction,
                accepted=False,
                reason=decision.reason,
                message_ar=decision.message('ar'),
                message_en=decision.message('en'),
            )

        bid = apply_bid(auction, bidder.id, amount, now)
        proxy_bids = resolve(auction, triggering_bidder_id=bidder.id, now=now)
        schedule_delivery(auction.id)

        return BidResult.from_auction(auction, accepted=True, bid=bid, auto_bids_placed=len(proxy_bids))


def set_auto_bid(auction_id: int, user, max_amount) -> AutoBid:
    """
    Create, raise or re-activate the user's auto-bid on an auction.

    The ceiling has to clear the current minimum bid. The resolver runs
    straight away so a new ceiling competes with existing ones without
    waiting for the next manual bid.
    """
    max_amount = Decimal(max_amount).quantize(CENTS)

    with auction_critical_section(auction_id) as auction:
        now = timezone.now()
        _activate_if_due(auction, now)
        decision = validate_bid(auction, max_amount, user.id, now)
        if not decision.accepted:
            # the leader only needs a ceiling that covers their own bid
            covers_own_lead = (
                decision.reason == RejectionReason.BID_TOO_LOW
                and auction.highest_bidder_id == user.id
                and max_amount >= auction.current_bid
            )
            if not covers_own_lead:
                raise AutoBidRejectedError(decision.reason, decision.minimum_bid)

        auto_bid, created = AutoBid.objects.get_or_create(
            auction=auction,
            user=user,
            defaults={'max_bid_amount': max_amount, 'created_at': now},
        )
        if not created:
            if not auto_bid.is_active:
                # re-activation queues behind instructions already standing
                auto_bid.created_at = now
                auto_bid.current_proxy_bid = None
            auto_bid.max_bid_amount = max_amount
            auto_bid.is_active = True
            auto_bid.save()

        logger.info(
            "User %s set auto-bid up to %s on auction %s",
            user.id, max_amount, auction_id
        )

        proxy_bids = resolve(auction, now=now)
        if proxy_bids:
            schedule_delivery(auction.id)

    auto_bid.refresh_from_db()
    return auto_bid


def cancel_auto_bid(auction_id: int, user) -> bool:
    with auction_critical_section(auction_id):
        updated = AutoBid.objects.filter(
            auction_id=auction_id, user=user, is_active=True
        ).update(is_active=False, updated_at=timezone.now())

    if updated:
        logger.info("User %s cancelled auto-bid on auction %s", user.id, auction_id)
    return bool(updated)


def _deactivate_auto_bids(auction):
    return AutoBid.objects.filter(auction=auction, is_active=True).update(
        is_active=False, updated_at=timezone.now()
    )


def close_if_expired(auction_id: int, now=None) -> bool:
    """
    End an active auction whose end_time has passed.

    Safe to call repeatedly or concurrently: the status check runs under
    the row lock, so only the first caller ends the auction and records
    auction_ended / auction_won. Returns whether this call closed it.
    """
    with auction_critical_section(auction_id) as auction:
        now = now or timezone.now()
        if auction.status != AuctionStatus.ACTIVE or now < auction.end_time:
            return False

        winner_id = auction.highest_bidder_id if auction.reserve_met else None
        auction.status = AuctionStatus.ENDED
        auction.closed_at = now
        auction.winner_id = winner_id
        auction.save(update_fields=['status', 'closed_at', 'winner', 'updated_at'])
        _deactivate_auto_bids(auction)

        record_event(auction, AuctionEventKind.AUCTION_ENDED, {
            'final_bid': str(auction.current_bid) if auction.current_bid is not None else None,
            'winner_id': winner_id,
            'reserve_met': auction.reserve_met,
            'bid_count': auction.bids.count(),
        })
        if winner_id is not None:
            record_event(auction, AuctionEventKind.AUCTION_WON, {
                'amount': str(auction.current_bid),
            }, recipient_id=winner_id)
        schedule_delivery(auction.id)

    if winner_id is not None:
        logger.info("Auction %s ended, won by user %s at %s", auction_id, winner_id, auction.current_bid)
    else:
        logger.info("Auction %s ended without a winner", auction_id)
    return True


def _activate_if_due(auction, now):
    """Open a scheduled auction whose start_time has passed. Caller holds the lock."""
    if auction.status != AuctionStatus.SCHEDULED or now < auction.start_time:
        return False
    auction.status = AuctionStatus.ACTIVE
    auction.save(update_fields=['status', 'updated_at'])
    logger.info("Auction %s activated", auction.id)
    return True


def activate_scheduled_if_due(auction_id: int) -> bool:
    with auction_critical_section(auction_id) as auction:
        return _activate_if_due(auction, timezone.now())


def activate_due_auctions() -> int:
    due = Auction.objects.filter(
        status=AuctionStatus.SCHEDULED, start_time__lte=timezone.now()
    ).values_list('id', flat=True)
    activated = 0
    for auction_id in list(due):
        try:
            activated += activate_scheduled_if_due(auction_id)
        except AuctionBusyError:
            logger.warning("Skipped activating busy auction %s, next sweep retries", auction_id)
    return activated


def close_due_auctions() -> int:
    due = Auction.objects.filter(
        status=AuctionStatus.ACTIVE, end_time__lte=timezone.now()
    ).values_list('id', flat=True)
    closed = 0
    for auction_id in list(due):
        try:
            closed += close_if_expired(auction_id)
        except AuctionBusyError:
            logger.warning("Skipped closing busy auction %s, next sweep retries", auction_id)
    return closed


def cancel_auction(auction_id: int, actor, is_admin=False) -> Auction:
    """Cancel an auction. Admin can cancel anytime; seller only their own with no bids."""
    with auction_critical_section(auction_id) as auction:
        if auction.status in TERMINAL_STATUSES:
            raise AuctionCannotCancelError(f"Auction is already {auction.status}.")

        if not is_admin:
            if auction.seller_id != actor.id:
                raise AuctionCannotCancelError("Only the seller can cancel this auction.")
            if auction.current_bid is not None:
                raise AuctionCannotCancelError("Auction has bids and cannot be cancelled by the seller.")

        auction.status = AuctionStatus.CANCELLED
        auction.closed_at = timezone.now()
        auction.save(update_fields=['status', 'closed_at', 'updated_at'])
        _deactivate_auto_bids(auction)

        record_event(auction, AuctionEventKind.AUCTION_CANCELLED, {
            'cancelled_by': actor.id,
            'by_admin': is_admin,
        })
        schedule_delivery(auction.id)

    logger.info("Auction %s cancelled by user %s", auction_id, actor.id)
    return auction


def record_view(auction_id: int) -> None:
    Auction.objects.filter(pk=auction_id).update(views=F('views') + 1)
