"""
Settings file access.

The settings file is a JSON document with a "ZohoBooks" section (OAuth client
parameters plus the current tokens) and a "Syncro" section (API key and
subdomain). The sync only ever rewrites the three token fields; every other
key is written back exactly as it was read.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from syncro_zoho.exceptions import ConfigError, PersistenceFailed
from syncro_zoho.helpers.parse_date import format_datetime, parse_datetime
from syncro_zoho.helpers.token_cipher import TokenCipher
from syncro_zoho.models.sync_models import TokenState

logger = logging.getLogger(__name__)

ZOHO_SECTION = "ZohoBooks"
SYNCRO_SECTION = "Syncro"

ZOHO_REQUIRED_KEYS = ("ClientID", "Secret", "RedirectUri", "AuthorizeUri", "Scope", "OrganizationID")
SYNCRO_REQUIRED_KEYS = ("APIKey", "Subdomain")


@dataclass(frozen=True)
class ZohoBooksSettings:
    client_id: str
    secret: str
    redirect_uri: str
    authorize_uri: str
    scope: str
    organization_id: str


@dataclass(frozen=True)
class SyncroSettings:
    api_key: str
    subdomain: str


@dataclass
class AppSettings:
    zoho_books: ZohoBooksSettings
    syncro: SyncroSettings
    token_state: TokenState


def _section(document: Dict[str, Any], name: str, required_keys) -> Dict[str, Any]:
    section = document.get(name)
    if not isinstance(section, dict):
        raise ConfigError(f"Settings file is missing the '{name}' section")

    missing = [key for key in required_keys if not str(section.get(key) or "").strip()]
    if missing:
        raise ConfigError(f"Settings section '{name}' is missing required values: {', '.join(missing)}")
    return section


class SettingsStore:
    """Loads the settings file and persists refreshed tokens into it."""

    def __init__(self, path, cipher: TokenCipher = None):
        self.path = Path(path)
        self.cipher = cipher or TokenCipher()

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            raise ConfigError(f"Settings file not found: {self.path}")
        try:
            with self.path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings file {self.path} is not valid JSON: {e}") from e
        except OSError as e:
            raise ConfigError(f"Settings file {self.path} could not be read: {e}") from e

        if not isinstance(document, dict):
            raise ConfigError(f"Settings file {self.path} must contain a JSON object")
        return document

    def load(self) -> AppSettings:
        """
        Load and validate the settings file.

        Returns:
            AppSettings: Zoho Books and Syncro settings plus the stored tokens.

        Raises:
            ConfigError: If the file is missing, unreadable or incomplete.
        """
        document = self._read_document()
        zoho = _section(document, ZOHO_SECTION, ZOHO_REQUIRED_KEYS)
        syncro = _section(document, SYNCRO_SECTION, SYNCRO_REQUIRED_KEYS)

        raw_expiration = zoho.get("TokenExpiration")
        try:
            expires_at = parse_datetime(raw_expiration)
        except ValueError:
            logger.warning(f"Ignoring unreadable TokenExpiration '{raw_expiration}' - token will be refreshed")
            expires_at = None

        token_state = TokenState(
            access_token=self.cipher.decrypt(zoho.get("AccessToken")),
            refresh_token=self.cipher.decrypt(zoho.get("RefreshToken")),
            expires_at=expires_at,
        )

        settings = AppSettings(
            zoho_books=ZohoBooksSettings(
                client_id=str(zoho["ClientID"]).strip(),
                secret=str(zoho["Secret"]).strip(),
                redirect_uri=str(zoho["RedirectUri"]).strip(),
                authorize_uri=str(zoho["AuthorizeUri"]).strip(),
                scope=str(zoho["Scope"]).strip(),
                organization_id=str(zoho["OrganizationID"]).strip(),
            ),
            syncro=SyncroSettings(
                api_key=str(syncro["APIKey"]).strip(),
                subdomain=str(syncro["Subdomain"]).strip(),
            ),
            token_state=token_state,
        )
        logger.info(f"Settings loaded from {self.path} (refresh token on record: {token_state.has_refresh_token})")
        return settings

    def save_tokens(self, token_state: TokenState) -> None:
        """
        Write the token fields back to the settings file.

        Only AccessToken, RefreshToken and TokenExpiration change. The file is
        replaced atomically so a failed write leaves the previous one intact.

        Raises:
            PersistenceFailed: If the file cannot be read back or written.
        """
        try:
            document = self._read_document()
        except ConfigError as e:
            raise PersistenceFailed(f"Could not re-read settings before saving tokens: {e}") from e

        zoho = document.get(ZOHO_SECTION)
        if not isinstance(zoho, dict):
            raise PersistenceFailed(f"Settings file has no '{ZOHO_SECTION}' section to update")

        zoho["AccessToken"] = self.cipher.encrypt(token_state.access_token)
        zoho["RefreshToken"] = self.cipher.encrypt(token_state.refresh_token)
        zoho["TokenExpiration"] = format_datetime(token_state.expires_at)

        directory = self.path.parent if str(self.path.parent) else Path(".")
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".settings-", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistenceFailed(f"Could not write tokens to {self.path}: {e}") from e

        logger.info(f"Zoho Books tokens saved to {self.path}")
