"""
Invoice Synchronization Service for the Syncro to Zoho Books integration

For every Syncro customer linked to a Zoho Books customer, the first unpaid
invoice updated this month is copied to Zoho Books with its line items mapped
and consolidated, then optionally closed in Syncro with a quick payment.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from syncro_zoho.exceptions import (
    InvoiceCreateFailed,
    PaymentCreateFailed,
    SourceRequestFailed,
    UnexpectedResponseShape,
)
from syncro_zoho.helpers.decimal_helpers import to_minor_units
from syncro_zoho.helpers.parse_date import first_of_month
from syncro_zoho.models.sync_models import (
    CustomerLink,
    SourceInvoice,
    SyncCounters,
    SyncResult,
    TargetLineItem,
)
from syncro_zoho.services.invoice_translation import translate_line_items
from syncro_zoho.services.product_mapping import ProductMappingTable

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything one run needs, passed explicitly to the service."""
    syncro: Any
    zoho_books: Any
    mapping_table: ProductMappingTable
    quick_pay: bool = True
    payment_terms: int = 0
    payment_method: str = "Quick"
    customer_property_name: str = "Zoho Books ID"
    today: Optional[date] = None
    counters: SyncCounters = field(default_factory=SyncCounters)


class InvoiceSyncService:
    """
    Service for synchronizing Syncro invoices to Zoho Books
    """

    def __init__(self, context: SyncContext):
        self.context = context
        self.results: List[SyncResult] = []

    @property
    def counters(self) -> SyncCounters:
        return self.context.counters

    def run(self) -> SyncCounters:
        """
        Run one sync pass.

        A failure to list customers or invoices ends the run early with the
        counters untouched. Failures for a single customer are counted and the
        run moves on to the next one.

        Returns:
            SyncCounters: Totals for the run.
        """
        try:
            links = self.build_customer_links()
            invoices = self.fetch_unpaid_invoices()
        except SourceRequestFailed as e:
            logger.error(f"Could not read from Syncro, nothing synced: {e}")
            self.log_summary()
            return self.counters

        for link in links:
            invoice = self.find_invoice_for_customer(link, invoices)
            if invoice is None:
                logger.debug(f"No unpaid invoice for customer {link.source_customer_id} ({link.name})")
                continue
            self.results.append(self.sync_customer(link, invoice))

        self.log_summary()
        return self.counters

    def build_customer_links(self) -> List[CustomerLink]:
        return self.context.syncro.get_customer_links(self.context.customer_property_name)

    def fetch_unpaid_invoices(self) -> List[SourceInvoice]:
        since = first_of_month(self.context.today)
        return self.context.syncro.get_unpaid_invoices(since)

    @staticmethod
    def find_invoice_for_customer(link: CustomerLink, invoices: List[SourceInvoice]) -> Optional[SourceInvoice]:
        """First invoice in listing order that belongs to the customer."""
        for invoice in invoices:
            if invoice.customer_id == link.source_customer_id:
                return invoice
        return None

    def build_invoice_payload(self, link: CustomerLink, invoice: SourceInvoice,
                              line_items: List[TargetLineItem]) -> Dict[str, Any]:
        """
        Build the Zoho Books invoice payload.

        The Syncro invoice number travels as reference_number so the two
        invoices can be matched up later.
        """
        payload = {
            'customer_id': link.target_customer_id,
            'payment_terms': self.context.payment_terms,
            'line_items': [item.to_payload() for item in line_items],
        }
        if invoice.number:
            payload['reference_number'] = invoice.number
        return payload

    def sync_customer(self, link: CustomerLink, invoice: SourceInvoice) -> SyncResult:
        """
        Copy one invoice to Zoho Books and optionally quick-pay it in Syncro.

        Returns:
            SyncResult: What happened, with the ids needed to follow up.
        """
        counters = self.counters
        counters.invoices_processed += 1
        result = SyncResult(
            source_customer_id=link.source_customer_id,
            target_customer_id=link.target_customer_id,
            source_invoice_id=invoice.invoice_id,
            success=False,
        )

        try:
            source_items = self.context.syncro.get_invoice_line_items(invoice.invoice_id)
            line_items = translate_line_items(source_items, self.context.mapping_table, invoice.invoice_id)
            if not line_items:
                raise InvoiceCreateFailed(f"Invoice {invoice.invoice_id} has no line items to send")

            payload = self.build_invoice_payload(link, invoice, line_items)
            result.zoho_invoice_id = self.context.zoho_books.create_invoice(payload)
        except (SourceRequestFailed, InvoiceCreateFailed, UnexpectedResponseShape) as e:
            counters.invoices_failed += 1
            result.error_message = str(e)
            logger.error(
                f"Failed to sync invoice {invoice.invoice_id} of Syncro customer {link.source_customer_id} "
                f"(Zoho customer {link.target_customer_id}): {e}"
            )
            return result
        except Exception as e:
            counters.invoices_failed += 1
            result.error_message = str(e)
            logger.exception(
                f"Unexpected error syncing invoice {invoice.invoice_id} of Syncro customer {link.source_customer_id} "
                f"(Zoho customer {link.target_customer_id}): {e}"
            )
            return result

        counters.invoices_created += 1
        result.success = True
        logger.info(
            f"Syncro invoice {invoice.invoice_id} ({invoice.number}) created in Zoho Books as "
            f"{result.zoho_invoice_id} for customer {link.target_customer_id}"
        )

        if self.context.quick_pay:
            self.submit_quick_payment(link, invoice, result)
        return result

    def submit_quick_payment(self, link: CustomerLink, invoice: SourceInvoice, result: SyncResult) -> None:
        """Mark the Syncro invoice paid. The Zoho Books invoice is left as is on failure."""
        counters = self.counters
        result.payment_attempted = True
        try:
            result.payment_id = self.context.syncro.create_payment(
                customer_id=link.source_customer_id,
                invoice_id=invoice.invoice_id,
                amount_cents=to_minor_units(invoice.total),
                payment_method=self.context.payment_method,
            )
        except PaymentCreateFailed as e:
            counters.payments_failed += 1
            result.error_message = str(e)
            logger.error(
                f"Quick payment failed for Syncro invoice {invoice.invoice_id} (customer {link.source_customer_id}); "
                f"Zoho Books invoice {result.zoho_invoice_id} needs manual reconciliation: {e}"
            )
            return
        except Exception as e:
            counters.payments_failed += 1
            result.error_message = str(e)
            logger.exception(
                f"Unexpected error paying Syncro invoice {invoice.invoice_id} (customer {link.source_customer_id}); "
                f"Zoho Books invoice {result.zoho_invoice_id} needs manual reconciliation: {e}"
            )
            return

        counters.payments_created += 1
        result.payment_success = True
        logger.info(f"Quick payment {result.payment_id} recorded for Syncro invoice {invoice.invoice_id}")

    def log_summary(self) -> None:
        stats = self.counters
        logger.info(
            "Sync complete - "
            f"invoices processed: {stats.invoices_processed}, "
            f"created: {stats.invoices_created}, "
            f"failed: {stats.invoices_failed}, "
            f"payments created: {stats.payments_created}, "
            f"payments failed: {stats.payments_failed}"
        )
        for result in self.results:
            if result.needs_reconciliation:
                logger.warning(
                    f"Reconcile: Zoho Books invoice {result.zoho_invoice_id} exists but Syncro invoice "
                    f"{result.source_invoice_id} is still unpaid"
                )
