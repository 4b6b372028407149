"""Google ID-token verification through the token-info endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from fuelflow.app.core.config import settings
from fuelflow.app.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class GoogleTokenClient:
    """Exchanges an ID token for its verified claims.

    *transport* lets tests substitute ``httpx.MockTransport``.
    """

    def __init__(
        self,
        tokeninfo_url: str | None = None,
        client_id: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.tokeninfo_url = tokeninfo_url or settings.GOOGLE_TOKENINFO_URL
        self.client_id = settings.GOOGLE_CLIENT_ID if client_id is None else client_id
        self.transport = transport

    def verify(self, id_token: str) -> dict[str, Any]:
        """Return the token's claims or raise ``AuthError``."""
        try:
            with httpx.Client(
                transport=self.transport, timeout=settings.GOOGLE_TIMEOUT_SECONDS
            ) as client:
                resp = client.get(self.tokeninfo_url, params={"id_token": id_token})
        except httpx.HTTPError as exc:
            logger.warning("Google token-info request failed: %s", exc)
            raise AuthError("Google authentication failed") from exc

        if resp.status_code != 200:
            raise AuthError("Invalid Google token")

        try:
            claims: dict[str, Any] = resp.json()
        except ValueError as exc:
            raise AuthError("Invalid Google token") from exc

        if self.client_id and claims.get("aud") != self.client_id:
            raise AuthError("Google token was issued for another client")
        if not claims.get("sub"):
            raise AuthError("Invalid Google token")
        return claims
