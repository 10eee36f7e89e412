import logging

from django.contrib.auth import get_user_model
from notifications.models import Notification
from channels.layers import get_channel_layer
from asgiref.sync import async_to_sync
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


def _auction_messages(auction, payload):
    title = auction.title
    amount = payload.get('amount')
    final_bid = payload.get('final_bid')
    return {
        'auction_new_bid': {
            'ar': f"مزايدة جديدة بقيمة {amount} على مزادك \"{title}\"",
            'en': f"New bid of {amount} on your auction \"{title}\""
        },
        'auction_outbid': {
            'ar': f"تمت المزايدة عليك في \"{title}\"، السعر الحالي {amount}",
            'en': f"You have been outbid on \"{title}\", current bid is {amount}"
        },
        'auction_extended': {
            'ar': f"تم تمديد المزاد \"{title}\" بسبب مزايدة في اللحظات الأخيرة",
            'en': f"Auction \"{title}\" was extended after a last-minute bid"
        },
        'auction_won': {
            'ar': f"مبروك! فزت بالمزاد \"{title}\" بمبلغ {amount}",
            'en': f"Congratulations! You won \"{title}\" for {amount}"
        },
        'auction_sold': {
            'ar': f"انتهى مزادك \"{title}\" بسعر {final_bid}",
            'en': f"Your auction \"{title}\" ended at {final_bid}"
        },
        'auction_ended_no_winner': {
            'ar': f"انتهى مزادك \"{title}\" بدون فائز",
            'en': f"Your auction \"{title}\" ended without a winner"
        },
        'auction_cancelled': {
            'ar': f"تم إلغاء المزاد \"{title}\"",
            'en': f"Auction \"{title}\" has been cancelled"
        },
        'autobid_exhausted': {
            'ar': f"وصلت المزايدة التلقائية على \"{title}\" إلى حدها الأقصى",
            'en': f"Your auto-bid on \"{title}\" has reached its limit"
        },
    }


def _auction_participant_ids(auction):
    bidder_ids = set(auction.bids.values_list('bidder_id', flat=True))
    bidder_ids.update(auction.auto_bids.values_list('user_id', flat=True))
    return bidder_ids


def _recipients_for(event):
    """Map one auction event to (users, notification_type) pairs."""
    auction = event.auction
    User = get_user_model()

    if event.kind == 'bid_accepted':
        return [([auction.seller], 'auction_new_bid')]

    if event.kind in ('outbid', 'auction_won', 'autobid_exhausted'):
        if event.recipient is None:
            return []
        notification_type = {
            'outbid': 'auction_outbid',
            'auction_won': 'auction_won',
            'autobid_exhausted': 'autobid_exhausted',
        }[event.kind]
        return [([event.recipient], notification_type)]

    if event.kind == 'auction_extended':
        users = User.objects.filter(id__in=_auction_participant_ids(auction))
        return [(users, 'auction_extended')]

    if event.kind == 'auction_ended':
        if event.payload.get('winner_id'):
            return [([auction.seller], 'auction_sold')]
        return [([auction.seller], 'auction_ended_no_winner')]

    if event.kind == 'auction_cancelled':
        users = User.objects.filter(id__in=_auction_participant_ids(auction))
        return [(users, 'auction_cancelled')]

    return []


def send_auction_notification(event):
    """
    Turn an auction event into per-user notifications and push each one
    to the user's notification group.
    """
    auction = event.auction
    messages = _auction_messages(auction, event.payload or {})
    created = []

    for users, notification_type in _recipients_for(event):
        for user in users:
            notification, is_new = Notification.objects.get_or_create(
                user=user,
                event=event,
                defaults={
                    'notification_type': notification_type,
                    'message_ar': messages[notification_type]['ar'],
                    'message_en': messages[notification_type]['en'],
                    'auction': auction,
                    'extra_data': {'event_kind': event.kind, **(event.payload or {})},
                },
            )
            if not is_new:
                continue
            send_websocket_notification(user, notification)
            created.append(notification)

    if created:
        logger.debug(
            "Created %s notification(s) for %s #%s on auction %s",
            len(created), event.kind, event.sequence, auction.id
        )
    return created


def send_websocket_notification(user, notification):
    """Send notification via WebSocket to specific user"""
    channel_layer = get_channel_layer()
    group_name = f'notifications_{user.id}'

    # Serialize the notification
    serializer = NotificationSerializer(notification)
    notification_data = serializer.data

    async_to_sync(channel_layer.group_send)(
        group_name,
        {
            'type': 'send_notification',
            'notification': notification_data
        }
    )
