"""
Webhook Views.

Inbound n8n automation events, authenticated by a shared secret header.
"""

import json
import logging

from django.db import transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from application.services import webhook_service
from application.tasks.webhook_tasks import process_webhook_event

logger = logging.getLogger(__name__)


class N8nWebhookView(APIView):
    """
    POST /webhooks/n8n/

    401 without a matching X-N8N-Secret header, 400 when the body is not
    JSON. A stored payload is processed in the background. Once
    authenticated the answer is always 200 so that n8n does not retry.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = []

    def post(self, request):
        provided = request.headers.get(webhook_service.SECRET_HEADER)
        if not webhook_service.secret_matches(provided):
            logger.warning(f"Rejected n8n webhook from {request.META.get('REMOTE_ADDR')}")
            return Response({'detail': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            payload = json.loads(request.body or b'')
        except ValueError:
            return Response({'detail': 'Bad Request'}, status=status.HTTP_400_BAD_REQUEST)

        event = webhook_service.store_event(payload)
        if event is not None:
            transaction.on_commit(lambda: process_webhook_event.delay(str(event.pk)))

        return Response({'ok': True})
