from rest_framework import serializers

from .models import LiveSession


class LiveSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = LiveSession
        fields = ["token", "host_lat", "host_lng", "guest_lat", "guest_lng",
                  "status", "updated_at"]
        read_only_fields = fields


class PositionSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90.0, max_value=90.0)
    lng = serializers.FloatField(min_value=-180.0, max_value=180.0)


class ShareIdSerializer(serializers.Serializer):
    shareId = serializers.RegexField(r"^[A-Za-z0-9]{8,64}$")
