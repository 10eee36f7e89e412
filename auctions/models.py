# auctions/models.py
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal


def default_extension_window():
    return int(settings.AUCTION_EXTENSION_WINDOW.total_seconds())

def default_extension_seconds():
    return int(settings.AUCTION_EXTENSION_DURATION.total_seconds())


class AuctionStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'  # waiting for start_time
    ACTIVE = 'active', 'Active'           # live, accepts bids
    ENDED = 'ended', 'Ended'
    CANCELLED = 'cancelled', 'Cancelled'

TERMINAL_STATUSES = (AuctionStatus.ENDED, AuctionStatus.CANCELLED)


class Auction(models.Model):
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='auctions')

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)

    starting_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    bid_increment = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('1.00'),
                                        validators=[MinValueValidator(Decimal('0.01'))])
    reserve_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # mutated only by the bidding engine, under the row lock
    current_bid = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    highest_bidder = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                       on_delete=models.SET_NULL, related_name='leading_auctions')
    winner = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                               on_delete=models.SET_NULL, related_name='won_auctions')

    start_time = models.DateTimeField(default=timezone.now)
    end_time = models.DateTimeField()

    # anti-sniping
    extension_window_seconds = models.PositiveIntegerField(default=default_extension_window)
    extension_seconds = models.PositiveIntegerField(default=default_extension_seconds)
    extension_count = models.PositiveIntegerField(default=0)
    last_extended_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=AuctionStatus.choices, default=AuctionStatus.SCHEDULED)
    views = models.PositiveIntegerField(default=0)

    # last sequence number handed out to an AuctionEvent of this auction
    event_sequence = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'start_time']),
            models.Index(fields=['status', 'end_time']),
        ]

    def __str__(self):
        return f"{self.title} (#{self.id})"

    @property
    def minimum_bid(self):
        """Lowest amount the next bid may carry."""
        if self.current_bid is None:
            return self.starting_price
        return self.current_bid + self.bid_increment

    @property
    def quick_bids(self):
        step = self.bid_increment
        base = self.minimum_bid
        return [base, base + step, base + step * 2]

    @property
    def extension_window(self):
        return timezone.timedelta(seconds=self.extension_window_seconds)

    @property
    def extension_duration(self):
        return timezone.timedelta(seconds=self.extension_seconds)

    @property
    def reserve_met(self):
        if self.current_bid is None:
            return False
        return self.reserve_price is None or self.current_bid >= self.reserve_price


class Bid(models.Model):
    """Ledger entry. Appended by the engine, never updated or deleted."""

    auction = models.ForeignKey(Auction, on_delete=models.CASCADE, related_name='bids')
    bidder = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bids')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    sequence = models.PositiveIntegerField()
    is_autobid = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['auction', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['auction', 'sequence'], name='unique_bid_sequence_per_auction'),
        ]

    def __str__(self):
        return f"Bid #{self.sequence} {self.amount} on {self.auction_id} by {self.bidder_id}"


class AutoBid(models.Model):
    """Standing proxy-bid instruction: bid for the user up to max_bid_amount."""

    auction = models.ForeignKey(Auction, on_delete=models.CASCADE, related_name='auto_bids')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='auto_bids')
    max_bid_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    current_proxy_bid = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-max_bid_amount', 'created_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['auction', 'user'], name='unique_autobid_per_bidder'),
        ]

    def __str__(self):
        state = 'active' if self.is_active else 'inactive'
        return f"AutoBid {self.user_id} up to {self.max_bid_amount} on {self.auction_id} ({state})"


class AuctionEventKind(models.TextChoices):
    BID_ACCEPTED = 'bid_accepted', 'Bid Accepted'
    OUTBID = 'outbid', 'Outbid'
    AUCTION_EXTENDED = 'auction_extended', 'Auction Extended'
    AUCTION_ENDED = 'auction_ended', 'Auction Ended'
    AUCTION_WON = 'auction_won', 'Auction Won'
    AUCTION_CANCELLED = 'auction_cancelled', 'Auction Cancelled'
    AUTOBID_EXHAUSTED = 'autobid_exhausted', 'Auto-bid Exhausted'


class AuctionEvent(models.Model):
    """
    Outbox row for one engine outcome.

    Written in the same transaction as the state change it describes, so the
    per-auction sequence follows ledger order. Delivery marks delivered_at.
    """

    auction = models.ForeignKey(Auction, on_delete=models.CASCADE, related_name='events')
    sequence = models.PositiveIntegerField()
    kind = models.CharField(max_length=30, choices=AuctionEventKind.choices)
    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                  on_delete=models.SET_NULL, related_name='auction_events')
    payload = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['auction', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['auction', 'sequence'], name='unique_event_sequence_per_auction'),
        ]
        indexes = [
            models.Index(fields=['delivered_at', 'auction']),
        ]

    def __str__(self):
        return f"{self.kind} #{self.sequence} on {self.auction_id}"

    def as_message(self):
        return {
            'auction_id': self.auction_id,
            'sequence': self.sequence,
            'kind': self.kind,
            'recipient_id': self.recipient_id,
            'payload': self.payload,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
