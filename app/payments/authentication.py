"""
Service-to-service authentication for the main service.

Endpoints called by the main service (plan change, cancellation, payment
lookups) require the shared key in the ``X-Main-Service-Api-Key`` header.
Keys are compared in constant time. When no key is configured every
request is rejected.

Usage:
    class ChangeSubscriptionPlanView(APIView):
        authentication_classes = [MainServiceApiKeyAuthentication]
        permission_classes = [IsAuthenticated]
"""

from __future__ import annotations

import hmac
import logging

from rest_framework import authentication, exceptions

from payments.context import get_billing_context


logger = logging.getLogger(__name__)


class MainServicePrincipal:
    """The authenticated caller: the main service, not a user."""

    is_authenticated = True
    is_anonymous = False
    username = "main-service"

    def __str__(self) -> str:
        return self.username


class MainServiceApiKeyAuthentication(authentication.BaseAuthentication):
    """
    Authenticate requests carrying the shared service key.

    Returns None when the header is absent so DRF answers 401 through the
    permission check; a wrong key fails authentication outright.
    """

    header = "X-Main-Service-Api-Key"
    keyword = "ApiKey"

    def authenticate(self, request):
        provided = request.headers.get(self.header)
        if not provided:
            return None

        expected = get_billing_context().config.service_api_key
        if not expected or not hmac.compare_digest(
            provided.encode("utf-8"), expected.encode("utf-8")
        ):
            logger.warning(
                "Invalid main service API key",
                extra={"path": request.path},
            )
            raise exceptions.AuthenticationFailed("Invalid API key.")

        return MainServicePrincipal(), provided

    def authenticate_header(self, request) -> str:
        return f'{self.keyword} header="{self.header}"'
