from django.contrib import admin
from .models import Auction, AuctionEvent, AutoBid, Bid


class BidInline(admin.TabularInline):
    model = Bid
    extra = 0
    can_delete = False
    ordering = ('sequence',)
    readonly_fields = ('sequence', 'bidder', 'amount', 'is_autobid', 'created_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Auction)
class AuctionAdmin(admin.ModelAdmin):
    list_display = ('title', 'seller', 'status', 'current_bid', 'highest_bidder', 'end_time', 'views')
    list_filter = ('status', 'category')
    search_fields = ('title', 'description')
    raw_id_fields = ('seller',)
    inlines = [BidInline]
    # bidding state belongs to the engine
    readonly_fields = (
        'current_bid', 'highest_bidder', 'winner', 'extension_count', 'last_extended_at',
        'event_sequence', 'views', 'created_at', 'updated_at', 'closed_at',
    )

    fieldsets = (
        (None, {
            'fields': ('title', 'description', 'category', 'seller', 'status')
        }),
        ('Pricing', {
            'fields': ('starting_price', 'bid_increment', 'reserve_price')
        }),
        ('Schedule', {
            'fields': ('start_time', 'end_time', 'extension_window_seconds', 'extension_seconds')
        }),
        ('Bidding state', {
            'fields': ('current_bid', 'highest_bidder', 'winner', 'extension_count',
                       'last_extended_at', 'event_sequence', 'views')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at', 'closed_at')
        }),
    )


@admin.register(AutoBid)
class AutoBidAdmin(admin.ModelAdmin):
    list_display = ('auction', 'user', 'max_bid_amount', 'current_proxy_bid', 'is_active', 'created_at')
    list_filter = ('is_active',)
    raw_id_fields = ('auction', 'user')
    readonly_fields = ('current_proxy_bid', 'created_at', 'updated_at')


@admin.register(AuctionEvent)
class AuctionEventAdmin(admin.ModelAdmin):
    list_display = ('auction', 'sequence', 'kind', 'recipient', 'created_at', 'delivered_at')
    list_filter = ('kind',)
    raw_id_fields = ('auction', 'recipient')
    readonly_fields = ('auction', 'sequence', 'kind', 'recipient', 'payload', 'created_at', 'delivered_at')
