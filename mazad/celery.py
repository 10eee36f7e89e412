import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'mazad.settings')

app = Celery('mazad')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()


@app.on_after_finalize.connect
def setup_periodic_tasks(sender, **kwargs):
    from django.conf import settings

    sender.conf.beat_schedule = {
        'activate-due-auctions': {
            'task': 'auctions.tasks.activate_due_auctions_task',
            'schedule': settings.AUCTION_CLOSE_SWEEP_SECONDS,
        },
        'close-due-auctions': {
            'task': 'auctions.tasks.close_due_auctions_task',
            'schedule': settings.AUCTION_CLOSE_SWEEP_SECONDS,
        },
        # at-least-once: pick up events whose on_commit delivery did not run
        'redeliver-auction-events': {
            'task': 'auctions.tasks.deliver_pending_events_task',
            'schedule': settings.AUCTION_EVENT_SWEEP_SECONDS,
        },
    }
