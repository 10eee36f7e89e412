from rest_framework import serializers
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    auction_id = serializers.IntegerField(read_only=True)
    auction_title = serializers.CharField(source='auction.title', read_only=True, default=None)
    event_sequence = serializers.IntegerField(source='event.sequence', read_only=True, default=None)
    created_at = serializers.DateTimeField(format="%Y-%m-%d %H:%M:%S", read_only=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'message_ar', 'message_en', 'is_read',
            'auction_id', 'auction_title', 'event_sequence', 'extra_data', 'created_at',
        ]
        read_only_fields = fields
