"""
WebSocket authentication.

Browsers cannot set headers on a WebSocket handshake, so the JWT access
token travels in the query string: ws/notifications/?token=<access>.
"""

import logging
from urllib.parse import parse_qs

from channels.auth import AuthMiddlewareStack
from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


@database_sync_to_async
def get_user_for_token(raw_token):
    try:
        token = AccessToken(raw_token)
    except TokenError as e:
        logger.debug(f"Rejected websocket token: {e}")
        return AnonymousUser()

    User = get_user_model()
    try:
        return User.objects.get(**{api_settings.USER_ID_FIELD: token[api_settings.USER_ID_CLAIM]},
                                is_active=True)
    except User.DoesNotExist:
        return AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """Put the user of a ?token= access token into scope['user']."""

    async def __call__(self, scope, receive, send):
        query = parse_qs(scope.get('query_string', b'').decode())
        token = (query.get('token') or [None])[0]
        if token:
            scope['user'] = await get_user_for_token(token)
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner):
    """Session auth first, a query-string JWT overrides it."""
    return AuthMiddlewareStack(JWTAuthMiddleware(inner))
