"""
Zoho Books token lifecycle.

A stored refresh token is the normal state. The access token is reused while
it has more than the safety margin left, refreshed otherwise, and a full
authorization is only needed when there is no refresh token or Zoho rejects it.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from syncro_zoho.exceptions import AuthExchangeFailed, PersistenceFailed, RefreshFailed
from syncro_zoho.models.responses import TokenGrant
from syncro_zoho.models.sync_models import TokenState, TokenStatus

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


class OAuthManager:
    """Hands out a usable Zoho Books access token, refreshing or re-authorizing as needed."""

    def __init__(self, zoho, store, token_state: Optional[TokenState], code_provider,
                 margin_seconds=300, clock: Callable[[], datetime] = None):
        """
        Args:
            zoho (ZohoBooks): Token endpoint client.
            store (SettingsStore): Where refreshed tokens are persisted.
            token_state (TokenState): Tokens loaded from the settings file.
            code_provider: Object with get_authorization_code(url, state).
            margin_seconds (int): Refresh when fewer seconds than this remain.
            clock: Returns the current aware UTC datetime.
        """
        self.zoho = zoho
        self.store = store
        self.token_state = token_state or TokenState()
        self.code_provider = code_provider
        self.margin_seconds = margin_seconds
        self.clock = clock or _utcnow

    def get_access_token(self) -> str:
        """
        Return an access token valid for at least the safety margin.

        Raises:
            AuthExchangeFailed: If a full authorization was needed and failed.
        """
        status = self.token_state.status(self.clock(), self.margin_seconds)
        logger.info(f"Zoho Books token status: {status.value}")

        if status == TokenStatus.VALID:
            token = self.token_state.access_token
        elif status == TokenStatus.NO_TOKEN:
            token = self._authorize()
        else:
            try:
                token = self._refresh()
            except RefreshFailed as e:
                logger.warning(f"Token refresh failed, manual authorization required: {e}")
                self.token_state.refresh_token = None
                token = self._authorize()

        self.zoho.access_token = token
        return token

    def _authorize(self) -> str:
        state = secrets.token_urlsafe(16)
        url = self.zoho.get_authorization_url(state)
        logger.info("Requesting a new Zoho Books authorization code")

        try:
            code = self.code_provider.get_authorization_code(url, state)
        except AuthExchangeFailed:
            raise
        except Exception as e:
            raise AuthExchangeFailed(f"Authorization code could not be obtained: {e}") from e

        if not code:
            raise AuthExchangeFailed("No authorization code was provided")

        grant = self.zoho.exchange_authorization_code(code)
        self._apply_grant(grant)
        logger.info("Zoho Books authorization completed")
        return self.token_state.access_token

    def _refresh(self) -> str:
        grant = self.zoho.refresh_access_token(self.token_state.refresh_token)
        self._apply_grant(grant)
        logger.info(f"Zoho Books access token refreshed, valid until {self.token_state.expires_at.isoformat()}")
        return self.token_state.access_token

    def _apply_grant(self, grant: TokenGrant):
        self.token_state.access_token = grant.access_token
        if grant.refresh_token:
            self.token_state.refresh_token = grant.refresh_token
        self.token_state.expires_at = self.clock() + timedelta(seconds=grant.expires_in)
        self._persist()

    def _persist(self):
        try:
            self.store.save_tokens(self.token_state)
        except PersistenceFailed as e:
            # the token in memory is still good for this run
            logger.error(f"Failed to persist Zoho Books tokens: {e}")
