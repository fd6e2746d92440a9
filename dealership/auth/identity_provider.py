import asyncio
import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from dealership.core.environment import get_firebase_credentials

logger = logging.getLogger(__name__)


class IdentityTokenError(Exception):
    """Raised when the identity provider rejects a token."""


class FirebaseIdentityProvider:
    """Verifies customer ID tokens issued by Firebase phone authentication."""

    def __init__(self):
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                service_account = get_firebase_credentials()
                credential = credentials.Certificate(service_account) if service_account else None
                self._app = firebase_admin.initialize_app(credential)
        return self._app

    def _verify(self, token: str) -> dict:
        return firebase_auth.verify_id_token(token, app=self._get_app())

    async def verify_id_token(self, token: str) -> dict:
        """Returns decoded claims (uid, phone_number, ...)."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self._verify, token)
        except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
                firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
            logger.warning("Identity token rejected", extra={"reason": str(e)})
            raise IdentityTokenError(str(e)) from e


_provider = FirebaseIdentityProvider()


def get_identity_provider() -> FirebaseIdentityProvider:
    return _provider
