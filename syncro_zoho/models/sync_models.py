"""
Domain models shared by the translation engine, the OAuth manager and the
sync orchestrator.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

DEFAULT_PRODUCT_ID = "DEFAULT"

ConsolidationKey = Tuple[str, str, Decimal]


@dataclass(frozen=True)
class CustomerLink:
    """A Syncro customer that carries a Zoho Books customer id."""
    source_customer_id: str
    target_customer_id: str
    name: str = ""


@dataclass(frozen=True)
class ProductMapping:
    """One row of the product mapping file."""
    source_product_id: str
    target_item_id: str
    display_name: str
    include_description: bool

    @property
    def is_default(self) -> bool:
        return self.source_product_id == DEFAULT_PRODUCT_ID


@dataclass(frozen=True)
class SourceInvoice:
    """An unpaid invoice as listed by Syncro."""
    invoice_id: str
    customer_id: str
    number: str
    total: Decimal
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class SourceLineItem:
    """A line item of a Syncro invoice."""
    product_id: str
    quantity: Decimal
    unit_price: Decimal
    display_name: str


@dataclass(frozen=True)
class TargetLineItem:
    """A Zoho Books invoice line item."""
    item_id: str
    quantity: Decimal
    rate: Decimal
    description: Optional[str] = None

    @property
    def consolidation_key(self) -> ConsolidationKey:
        # absent and empty descriptions collapse to the same key
        return (self.item_id, self.description or "", self.rate)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'item_id': self.item_id,
            'quantity': self.quantity,
            'rate': self.rate,
        }
        if self.description is not None:
            payload['description'] = self.description
        return payload


class TokenStatus(Enum):
    """Where the stored Zoho Books tokens stand."""
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


@dataclass
class TokenState:
    """Access/refresh token pair and the access token's expiry (UTC)."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def has_refresh_token(self) -> bool:
        return bool(self.refresh_token)

    def seconds_until_expiry(self, now: datetime) -> Optional[float]:
        if self.expires_at is None:
            return None
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return (expires_at - now).total_seconds()

    def status(self, now: datetime, margin_seconds: int) -> TokenStatus:
        """
        Classify the stored tokens.

        Args:
            now (datetime): Current UTC time.
            margin_seconds (int): Tokens expiring within this window are
                treated as expiring soon.

        Returns:
            TokenStatus
        """
        if not self.has_refresh_token:
            return TokenStatus.NO_TOKEN

        remaining = self.seconds_until_expiry(now)
        if remaining is None or remaining <= 0:
            return TokenStatus.EXPIRED
        if remaining <= margin_seconds or not self.access_token:
            return TokenStatus.EXPIRING_SOON
        return TokenStatus.VALID


@dataclass
class SyncCounters:
    """Counters for one sync run"""
    invoices_processed: int = 0
    invoices_created: int = 0
    invoices_failed: int = 0
    payments_created: int = 0
    payments_failed: int = 0

    def to_dict(self) -> Dict:
        return {
            'invoices_processed': self.invoices_processed,
            'invoices_created': self.invoices_created,
            'invoices_failed': self.invoices_failed,
            'payments_created': self.payments_created,
            'payments_failed': self.payments_failed
        }


@dataclass
class SyncResult:
    """Result of syncing one customer's invoice"""
    source_customer_id: str
    target_customer_id: str
    source_invoice_id: str
    success: bool
    zoho_invoice_id: Optional[str] = None
    payment_id: Optional[str] = None
    payment_attempted: bool = False
    payment_success: bool = False
    error_message: Optional[str] = None

    @property
    def needs_reconciliation(self) -> bool:
        """Invoice exists in Zoho Books but is still unpaid in Syncro."""
        return self.success and self.payment_attempted and not self.payment_success
