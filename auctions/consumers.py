# auctions/consumers.py
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .events import auction_group_name, events_after
from .models import Auction


class AuctionEventConsumer(AsyncJsonWebsocketConsumer):
    """
    Live event stream of one auction: ws/auctions/<auction_id>/?after=<seq>

    With `after`, stored events past that sequence are replayed before
    live ones, so a reconnecting client can catch up without gaps.
    Events are public; targeted ones carry their recipient id and the
    client decides whether they concern it.
    """

    async def connect(self):
        self.auction_id = int(self.scope['url_route']['kwargs']['auction_id'])
        self.group_name = auction_group_name(self.auction_id)
        self.last_sequence = 0

        if not await self._auction_exists():
            await self.close(code=4404)
            return

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        after = self._after_param()
        if after is not None:
            for message in await self._replay(after):
                await self._forward(message)

    async def disconnect(self, code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get('action') == 'ping':
            await self.send_json({'type': 'pong', 'last_sequence': self.last_sequence})

    async def auction_event(self, message):
        await self._forward(message['event'])

    async def _forward(self, event):
        # replay and live delivery can overlap; sequence order wins
        if event['sequence'] <= self.last_sequence:
            return
        self.last_sequence = event['sequence']
        await self.send_json({'type': 'auction_event', 'event': event})

    def _after_param(self):
        query = parse_qs(self.scope.get('query_string', b'').decode())
        values = query.get('after')
        if not values:
            return None
        try:
            return max(int(values[0]), 0)
        except ValueError:
            return None

    @database_sync_to_async
    def _auction_exists(self):
        return Auction.objects.filter(pk=self.auction_id).exists()

    @database_sync_to_async
    def _replay(self, after):
        return [event.as_message() for event in events_after(self.auction_id, after)]
