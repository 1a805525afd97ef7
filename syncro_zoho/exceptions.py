"""
Exception hierarchy for the Syncro to Zoho Books invoice sync.

Run-fatal errors (ConfigError, AuthExchangeFailed) propagate to the command
line entry point. Everything else is caught around a single customer/invoice,
logged with its identifying ids and turned into a counter increment.
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for all sync errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} {self.details}"
        return self.message


class ConfigError(SyncError):
    """Missing or invalid settings file, mapping file or environment."""


class NetworkFailed(SyncError):
    """The HTTP call never produced a response (connection error, timeout)."""


class UnexpectedResponseShape(SyncError):
    """A vendor response did not carry the fields we depend on."""

    def __init__(self, what: str, missing: str, payload: Any = None):
        super().__init__(
            f"Unexpected {what} response: missing or invalid '{missing}'",
            {"payload": payload} if payload is not None else None,
        )
        self.what = what
        self.missing = missing


class AuthExchangeFailed(SyncError):
    """Authorization code could not be exchanged for tokens. Fatal."""


class RefreshFailed(SyncError):
    """Refresh token was rejected. Triggers manual re-authorization."""


class PersistenceFailed(SyncError):
    """Updated tokens could not be written back to the settings file."""


class SourceRequestFailed(SyncError):
    """A read from the Syncro API failed."""


class InvoiceCreateFailed(SyncError):
    """Zoho Books refused or never answered an invoice creation."""


class PaymentCreateFailed(SyncError):
    """Syncro refused or never answered a quick payment."""
