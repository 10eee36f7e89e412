from django.urls import path

from .consumers import AuctionEventConsumer

websocket_urlpatterns = [
    path('ws/auctions/<int:auction_id>/', AuctionEventConsumer.as_asgi()),
]
