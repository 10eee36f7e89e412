# auctions/events.py
"""
Auction event emitter.

Engine code calls `record_event` inside its transaction; the row is the
outbox entry and its per-auction sequence fixes the delivery order. After
commit, `deliver_events` pushes pending rows to the `auction_<id>` channel
group in sequence order and hands targeted ones to the notification layer.
Delivery is at-least-once: a row stays pending until the push succeeded.
"""
import logging

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

from .models import Auction, AuctionEvent

logger = logging.getLogger(__name__)


def auction_group_name(auction_id):
    return f'auction_{auction_id}'


def record_event(auction, kind, payload=None, recipient_id=None):
    """Append an outbox row for `auction`. Call under the auction's row lock."""
    auction.event_sequence += 1
    auction.save(update_fields=['event_sequence'])
    event = AuctionEvent.objects.create(
        auction=auction,
        sequence=auction.event_sequence,
        kind=kind,
        recipient_id=recipient_id,
        payload=payload or {},
    )
    logger.debug("Recorded %s #%s on auction %s", kind, event.sequence, auction.id)
    return event


def schedule_delivery(auction_id):
    """Queue delivery of pending events once the current transaction commits."""
    from .tasks import deliver_auction_events_task

    transaction.on_commit(lambda: deliver_auction_events_task.delay(auction_id))


def events_after(auction_id, after=0):
    return AuctionEvent.objects.filter(auction_id=auction_id, sequence__gt=after or 0).order_by('sequence')


@transaction.atomic
def deliver_events(auction_id):
    """
    Push every undelivered event of one auction, oldest first.

    Rows are locked so two deliverers cannot interleave one auction's
    stream. A failed push rolls back the delivered marks of this batch.
    """
    from notifications.utils import send_auction_notification

    pending = list(
        AuctionEvent.objects.select_for_update()
        .filter(auction_id=auction_id, delivered_at__isnull=True)
        .select_related('auction', 'recipient')
        .order_by('sequence')
    )
    if not pending:
        return 0

    channel_layer = get_channel_layer()
    group = auction_group_name(auction_id)
    now = timezone.now()

    for event in pending:
        async_to_sync(channel_layer.group_send)(
            group,
            {
                'type': 'auction.event',
                'event': event.as_message(),
            }
        )
        send_auction_notification(event)
        event.delivered_at = now

    AuctionEvent.objects.bulk_update(pending, ['delivered_at'])
    logger.info("Delivered %s event(s) for auction %s", len(pending), auction_id)
    return len(pending)


def deliver_pending_events():
    """Sweep every auction that still has undelivered events."""
    auction_ids = (
        AuctionEvent.objects.filter(delivered_at__isnull=True)
        .order_by('auction_id')
        .values_list('auction_id', flat=True)
        .distinct()
    )
    delivered = 0
    for auction_id in list(auction_ids):
        try:
            delivered += deliver_events(auction_id)
        except Exception:
            logger.exception("Failed to deliver events for auction %s, next sweep retries", auction_id)
    return delivered


async def subscribe(auction_id, after=None):
    """
    Async stream of one auction's events for in-process consumers.

    Joins the auction group first, then replays stored events after
    `after`, so nothing published between the two steps is lost. Events
    already replayed are skipped when they arrive live.
    """
    channel_layer = get_channel_layer()
    group = auction_group_name(auction_id)
    channel_name = await channel_layer.new_channel()
    await channel_layer.group_add(group, channel_name)
    last_seen = after or 0
    try:
        if after is not None:
            for message in await _replay(auction_id, after):
                last_seen = message['sequence']
                yield message
        while True:
            message = await channel_layer.receive(channel_name)
            event = message['event']
            if event['sequence'] <= last_seen:
                continue
            last_seen = event['sequence']
            yield event
    finally:
        await channel_layer.group_discard(group, channel_name)


@database_sync_to_async
def _replay(auction_id, after):
    if not Auction.objects.filter(pk=auction_id).exists():
        raise Auction.DoesNotExist(f"Auction {auction_id} does not exist")
    return [event.as_message() for event in events_after(auction_id, after)]
