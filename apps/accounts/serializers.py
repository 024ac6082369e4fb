from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Serializer for the current user's profile."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name', 'created_at']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()

