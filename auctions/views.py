# auctions/views.py
import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import permissions, status, generics
from django.shortcuts import get_object_or_404
from accounts.permissionsUsers import IsSellerOrAdmin, IsSuperAdminOrAdmin
from .events import events_after
from .exceptions import AuctionBusyError, AuctionCannotCancelError, AuctionInvariantError, AutoBidRejectedError
from .ledger import bid_history
from .models import Auction, AuctionStatus, AutoBid
from .serializers import (
    AuctionDetailSerializer, AuctionEventSerializer, AuctionListSerializer,
    AutoBidSerializer, AutoBidSettingsSerializer, BidResultSerializer,
    BidSerializer, PlaceBidSerializer,
)
from .services import (
    activate_scheduled_if_due,
    cancel_auction,
    cancel_auto_bid,
    close_if_expired,
    place_bid,
    record_view,
    set_auto_bid,
)
from .validators import REJECTION_MESSAGES

logger = logging.getLogger(__name__)

BUSY_MESSAGE = {
    'ar': "المزاد مشغول حالياً، يرجى المحاولة مرة أخرى",
    'en': "Auction is busy, please try again.",
}


def busy_response():
    return Response({
        'error': BUSY_MESSAGE['en'],
        'message_ar': BUSY_MESSAGE['ar'],
        'message_en': BUSY_MESSAGE['en'],
        'reason': AuctionBusyError.reason,
    }, status=status.HTTP_409_CONFLICT)


def internal_error_response(exc):
    # details stay in the logs; clients get an opaque message
    logger.critical("Auction invariant failure surfaced to API: %s", exc)
    return Response({'error': 'internal error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class PublicAuctionListView(generics.ListAPIView):
    permission_classes = []  # public
    serializer_class = AuctionListSerializer

    def get_queryset(self):
        qs = Auction.objects.filter(status=AuctionStatus.ACTIVE).order_by('end_time')

        category = self.request.query_params.get('category')
        if category:
            qs = qs.filter(category=category)

        return qs

class AuctionDetailView(APIView):
    permission_classes = []  # public

    def get(self, request, pk):
        auction = get_object_or_404(Auction, pk=pk)
        # opportunistic activation
        if auction.status == AuctionStatus.SCHEDULED:
            try:
                activate_scheduled_if_due(auction.id)
            except AuctionBusyError:
                logger.info("Auction %s busy, leaving activation to the scheduler", auction.id)
        record_view(auction.id)
        auction.refresh_from_db()
        return Response(AuctionDetailSerializer(auction).data)

class PlaceBidView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, pk):
        ser = PlaceBidSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=400)
        amount = ser.validated_data['amount']

        try:
            result = place_bid(pk, request.user, amount)
        except Auction.DoesNotExist:
            return Response({"error": "Auction not found"}, status=status.HTTP_404_NOT_FOUND)
        except AuctionBusyError:
            return busy_response()
        except AuctionInvariantError as e:
            return internal_error_response(e)

        data = BidResultSerializer(result).data
        if not result.accepted:
            data['error'] = result.message_en
            return Response(data, status=status.HTTP_400_BAD_REQUEST)
        return Response(data, status=status.HTTP_201_CREATED)

class AuctionBidsView(generics.ListAPIView):
    """
    GET /api/auctions/<pk>/bids/
    Ledger of accepted bids, oldest first.
    """
    permission_classes = []  # public
    serializer_class = BidSerializer

    def get_queryset(self):
        auction = get_object_or_404(Auction, pk=self.kwargs['pk'])
        return bid_history(auction)

class AutoBidView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        auto_bid = get_object_or_404(AutoBid, auction_id=pk, user=request.user)
        return Response(AutoBidSerializer(auto_bid).data)

    def post(self, request, pk):
        ser = AutoBidSettingsSerializer(data=request.data)
        if not ser.is_valid():
            return Response(ser.errors, status=400)

        try:
            auto_bid = set_auto_bid(pk, request.user, ser.validated_data['max_bid_amount'])
        except Auction.DoesNotExist:
            return Response({"error": "Auction not found"}, status=status.HTTP_404_NOT_FOUND)
        except AutoBidRejectedError as e:
            messages = REJECTION_MESSAGES[e.reason]
            return Response({
                'error': messages['en'].format(minimum=e.minimum_bid),
                'message_ar': messages['ar'].format(minimum=e.minimum_bid),
                'reason': e.reason,
                'minimum_bid': str(e.minimum_bid) if e.minimum_bid is not None else None,
            }, status=status.HTTP_400_BAD_REQUEST)
        except AuctionBusyError:
            return busy_response()
        except AuctionInvariantError as e:
            return internal_error_response(e)

        return Response(AutoBidSerializer(auto_bid).data, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        try:
            cancelled = cancel_auto_bid(pk, request.user)
        except Auction.DoesNotExist:
            return Response({"error": "Auction not found"}, status=status.HTTP_404_NOT_FOUND)
        except AuctionBusyError:
            return busy_response()
        return Response({'status': 'cancelled' if cancelled else 'inactive'})

class AuctionEventsView(generics.ListAPIView):
    """
    GET /api/auctions/<pk>/events/?after=<sequence>
    Catch-up feed for clients that missed live events.
    """
    permission_classes = []  # public
    serializer_class = AuctionEventSerializer

    def get_queryset(self):
        auction = get_object_or_404(Auction, pk=self.kwargs['pk'])
        try:
            after = int(self.request.query_params.get('after', 0))
        except ValueError:
            after = 0
        return events_after(auction.id, after)

class AdminCloseAuctionView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsSuperAdminOrAdmin]

    def post(self, request, pk):
        try:
            closed = close_if_expired(pk)
        except Auction.DoesNotExist:
            return Response({"error": "Auction not found"}, status=status.HTTP_404_NOT_FOUND)
        except AuctionBusyError:
            return busy_response()

        auction = Auction.objects.get(pk=pk)
        return Response({
            'closed': closed,
            'status': auction.status,
            'winner_id': auction.winner_id,
        }, status=status.HTTP_200_OK)

class CancelAuctionView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsSellerOrAdmin]

    def post(self, request, pk):
        try:
            auction = cancel_auction(pk, actor=request.user, is_admin=request.user.is_platform_admin)
        except Auction.DoesNotExist:
            return Response({"error": "Auction not found"}, status=status.HTTP_404_NOT_FOUND)
        except AuctionCannotCancelError as e:
            return Response({'error': e.message, 'reason': e.reason}, status=400)
        except AuctionBusyError:
            return busy_response()
        return Response({'status': 'cancelled', 'auction_id': auction.id})
