# auctions/urls.py
from django.urls import path
from .views import (
    PublicAuctionListView, AuctionDetailView, PlaceBidView, AuctionBidsView,
    AutoBidView, AuctionEventsView, AdminCloseAuctionView, CancelAuctionView,
)

urlpatterns = [
    # public
    path('', PublicAuctionListView.as_view(), name='auction-list'),
    path('<int:pk>/', AuctionDetailView.as_view(), name='auction-detail'),
    path('<int:pk>/bids/', AuctionBidsView.as_view(), name='auction-bids'),
    path('<int:pk>/events/', AuctionEventsView.as_view(), name='auction-events'),

    # bidding
    path('<int:pk>/bid/', PlaceBidView.as_view(), name='auction-bid'),
    path('<int:pk>/auto-bid/', AutoBidView.as_view(), name='auction-auto-bid'),

    # seller / admin
    path('<int:pk>/cancel/', CancelAuctionView.as_view(), name='auction-cancel'),
    path('<int:pk>/close/', AdminCloseAuctionView.as_view(), name='auction-admin-close'),
]
