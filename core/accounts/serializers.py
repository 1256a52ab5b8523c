"""
Account Serializers

Serializers:
- RoleTokenObtainPairSerializer: JWT pair whose access token carries the role claim
"""

from typing import Any, Dict

from django.conf import settings
from django.contrib.auth.models import User
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Account


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT token serializer embedding the account role.

    Token Payload Includes:
    - username: User identification
    - role: Operator role ("user" or "admin"), read by the settlement endpoints
    """

    @classmethod
    def get_token(cls, user: User) -> RefreshToken:
        token = super().get_token(user)

        account, _ = Account.objects.get_or_create(user=user)
        token["username"] = user.username
        token[settings.ROLE_CLAIM] = account.role

        return token

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        data = super().validate(attrs)

        # Add user information to response for frontend convenience
        data.update(
            {
                "user_id": self.user.id,
                "username": self.user.username,
                "role": self.user.account.role,
            }
        )
        return data
