from rest_framework import serializers
from decimal import Decimal
from .models import Auction, AuctionEvent, AutoBid, Bid


class AuctionDetailSerializer(serializers.ModelSerializer):
    seller_id = serializers.IntegerField(read_only=True)
    highest_bidder_id = serializers.IntegerField(read_only=True)
    winner_id = serializers.IntegerField(read_only=True)
    minimum_bid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    quick_bids = serializers.ListField(
        child=serializers.DecimalField(max_digits=12, decimal_places=2), read_only=True
    )
    bid_count = serializers.SerializerMethodField()

    class Meta:
        model = Auction
        fields = [
            'id', 'title', 'description', 'category', 'status',
            'seller_id', 'starting_price', 'bid_increment',
            'current_bid', 'highest_bidder_id', 'winner_id',
            'minimum_bid', 'quick_bids', 'bid_count',
            'start_time', 'end_time',
            'extension_window_seconds', 'extension_seconds',
            'extension_count', 'last_extended_at',
            'views', 'event_sequence', 'closed_at',
        ]
        read_only_fields = fields

    def get_bid_count(self, obj):
        return obj.bids.count()


class AuctionListSerializer(serializers.ModelSerializer):
    seller_id = serializers.IntegerField(read_only=True)
    minimum_bid = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Auction
        fields = [
            'id', 'title', 'category', 'status', 'end_time',
            'starting_price', 'bid_increment', 'current_bid', 'minimum_bid',
            'seller_id', 'views',
        ]
        read_only_fields = fields


class PlaceBidSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))


class AutoBidSettingsSerializer(serializers.Serializer):
    max_bid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class BidSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bid
        fields = ['id', 'auction', 'bidder', 'amount', 'sequence', 'is_autobid', 'created_at']
        read_only_fields = fields


class AutoBidSerializer(serializers.ModelSerializer):
    class Meta:
        model = AutoBid
        fields = ['id', 'auction', 'user', 'max_bid_amount', 'current_proxy_bid', 'is_active', 'created_at', 'updated_at']
        read_only_fields = fields


class AuctionEventSerializer(serializers.ModelSerializer):
    recipient_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = AuctionEvent
        fields = ['id', 'auction', 'sequence', 'kind', 'recipient_id', 'payload', 'created_at']
        read_only_fields = fields


class BidResultSerializer(serializers.Serializer):
    accepted = serializers.BooleanField()
    current_bid = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    minimum_bid = serializers.DecimalField(max_digits=12, decimal_places=2)
    highest_bidder_id = serializers.IntegerField(allow_null=True)
    end_time = serializers.DateTimeField()
    reason = serializers.CharField(allow_null=True)
    message_ar = serializers.CharField(allow_blank=True)
    message_en = serializers.CharField(allow_blank=True)
    auto_bids_placed = serializers.IntegerField()
    bid = BidSerializer(allow_null=True)
