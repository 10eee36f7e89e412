from django.db import models
from django.conf import settings


class NotificationType(models.TextChoices):
    AUCTION_NEW_BID = 'auction_new_bid', 'Auction New Bid'
    AUCTION_OUTBID = 'auction_outbid', 'Auction Outbid'
    AUCTION_EXTENDED = 'auction_extended', 'Auction Extended'
    AUCTION_WON = 'auction_won', 'Auction Won'
    AUCTION_SOLD = 'auction_sold', 'Auction Sold'
    AUCTION_ENDED_NO_WINNER = 'auction_ended_no_winner', 'Auction Ended No Winner'
    AUCTION_CANCELLED = 'auction_cancelled', 'Auction Cancelled'
    AUTOBID_EXHAUSTED = 'autobid_exhausted', 'Auto-bid Exhausted'


class Notification(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='user_notifications'
    )
    notification_type = models.CharField(max_length=50, choices=NotificationType.choices)
    message_ar = models.TextField()
    message_en = models.TextField()

    auction = models.ForeignKey('auctions.Auction', on_delete=models.CASCADE,
                                null=True, blank=True, related_name='notifications')
    # source event; one notification per user and event even if delivery repeats
    event = models.ForeignKey('auctions.AuctionEvent', on_delete=models.SET_NULL,
                              null=True, blank=True, related_name='notifications')
    extra_data = models.JSONField(null=True, blank=True)

    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'notifications_notification'
        constraints = [
            models.UniqueConstraint(fields=['user', 'event'], name='unique_notification_per_event'),
        ]

    def __str__(self):
        return f"{self.notification_type} for {self.user_id}"
