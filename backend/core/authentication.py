"""
Bearer token authentication.

Every request carrying ``Authorization: Bearer <token>`` is verified here:
signature and expiry through simplejwt, then the ``id`` claim is resolved
to a live user row and the user's roles are aggregated from the role tables.
"""
import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from .permissions import get_user_roles

logger = logging.getLogger(__name__)


class BearerAuthentication(JWTAuthentication):
    """JWT authentication that also attaches the caller's roles to ``request.user``"""

    def get_raw_token(self, header):
        # "Bearer" with nothing after it is treated like a missing header
        if len(header.split()) == 1:
            return None
        return super().get_raw_token(header)

    def get_user(self, validated_token):
        user_id = validated_token.get(api_settings.USER_ID_CLAIM)
        if not user_id:
            logger.warning("Rejected token without id claim")
            raise InvalidToken('Invalid token. No id present in the token.')

        user = self.user_model.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
        if user is None:
            logger.warning(f"Rejected token for unknown user {user_id}")
            raise InvalidToken('Invalid token. No user present with the id.')

        if not user.is_active:
            raise AuthenticationFailed('User account is disabled.', code='user_inactive')

        user.roles = get_user_roles(user.pk)
        return user


def issue_tokens(user):
    """Return ``(access, refresh)`` token strings for a user"""
    refresh = RefreshToken.for_user(user)
    return str(refresh.access_token), str(refresh)
