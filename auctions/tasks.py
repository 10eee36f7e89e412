# auctions/tasks.py
import logging

from celery import shared_task

from auctions.events import deliver_events, deliver_pending_events
from auctions.services import activate_due_auctions, close_due_auctions, close_if_expired

logger = logging.getLogger(__name__)


@shared_task
def activate_due_auctions_task():
    return activate_due_auctions()

@shared_task
def close_due_auctions_task():
    closed = close_due_auctions()
    if closed:
        logger.info("Closed %s expired auction(s)", closed)
    return closed

@shared_task
def close_auction_task(auction_id):
    return close_if_expired(auction_id)

@shared_task
def deliver_auction_events_task(auction_id):
    try:
        return deliver_events(auction_id)
    except Exception:
        # left pending; deliver_pending_events_task picks it up again
        logger.exception("Failed to deliver events for auction %s", auction_id)
        raise

@shared_task
def deliver_pending_events_task():
    return deliver_pending_events()
