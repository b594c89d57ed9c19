from rest_framework import serializers
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Current user profile, including the ledger role."""

    can_record_payments = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'role',
            'can_record_payments',
            'created_at',
            'last_login',
        ]
        read_only_fields = fields


class UserPublicSerializer(serializers.ModelSerializer):
    """Public user info (who recorded a payment)."""

    class Meta:
        model = User
        fields = ['id', 'display_name', 'email']
        read_only_fields = fields
