"""
Tests for Invoice Synchronization Service
"""

import os
import sys
import unittest
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tests.base_test import BaseTestCase
from syncro_zoho.exceptions import InvoiceCreateFailed, PaymentCreateFailed, SourceRequestFailed
from syncro_zoho.models.sync_models import (
    CustomerLink,
    ProductMapping,
    SourceInvoice,
    SourceLineItem,
    SyncCounters,
)
from syncro_zoho.services.invoice_sync import InvoiceSyncService, SyncContext
from syncro_zoho.services.product_mapping import ProductMappingTable
from syncro_zoho.services.syncro import Syncro


def invoice(invoice_id, customer_id, total="100.00", number=None):
    return SourceInvoice(invoice_id, customer_id, number or f"#{invoice_id}", Decimal(total))


def labor(quantity=1):
    return SourceLineItem("42", Decimal(quantity), Decimal("50"), "Labor")


class FakeSyncro:
    """In-memory Syncro where a quick payment removes the invoice from the unpaid list"""

    def __init__(self, links, invoices, line_items):
        self.links = links
        self.invoices = list(invoices)
        self.line_items = line_items
        self.payments = []
        self.since = None

    def get_customer_links(self, property_name):
        return list(self.links)

    def get_unpaid_invoices(self, since):
        self.since = since
        return list(self.invoices)

    def get_invoice_line_items(self, invoice_id):
        return self.line_items[invoice_id]

    def create_payment(self, customer_id, invoice_id, amount_cents, payment_method):
        self.payments.append((customer_id, invoice_id, amount_cents, payment_method))
        self.invoices = [i for i in self.invoices if i.invoice_id != invoice_id]
        return f"PAY-{invoice_id}"


class TestInvoiceSyncService(unittest.TestCase):
    """Test cases for InvoiceSyncService"""

    def setUp(self):
        self.mapping_table = ProductMappingTable([
            ProductMapping("42", "I1", "Labor", True),
            ProductMapping("DEFAULT", "I0", "Misc", False),
        ])
        self.links = [CustomerLink("1", "Z-1", "Acme"), CustomerLink("2", "Z-2", "Globex")]
        self.syncro = FakeSyncro(
            self.links,
            [invoice("100", "1", "150.00"), invoice("200", "2", "19.995")],
            {"100": [labor(2), labor(1)], "200": [labor(1)]},
        )
        self.zoho = MagicMock()
        self.zoho.create_invoice.side_effect = lambda payload: f"ZI-{payload['customer_id']}"

    def make_service(self, quick_pay=True):
        context = SyncContext(
            syncro=self.syncro,
            zoho_books=self.zoho,
            mapping_table=self.mapping_table,
            quick_pay=quick_pay,
            today=date(2026, 3, 17),
        )
        return InvoiceSyncService(context)

    def test_sync_counters_to_dict(self):
        counters = SyncCounters(invoices_processed=3, invoices_created=2, invoices_failed=1,
                                payments_created=1, payments_failed=1)
        self.assertEqual(counters.to_dict(), {
            'invoices_processed': 3,
            'invoices_created': 2,
            'invoices_failed': 1,
            'payments_created': 1,
            'payments_failed': 1,
        })

    def test_full_run(self):
        service = self.make_service()

        counters = service.run()

        self.assertEqual(counters.to_dict(), {
            'invoices_processed': 2,
            'invoices_created': 2,
            'invoices_failed': 0,
            'payments_created': 2,
            'payments_failed': 0,
        })
        self.assertEqual(self.syncro.since, date(2026, 3, 1))

        first_payload = self.zoho.create_invoice.call_args_list[0][0][0]
        self.assertEqual(first_payload, {
            'customer_id': 'Z-1',
            'payment_terms': 0,
            'line_items': [{'item_id': 'I1', 'quantity': Decimal('3'), 'rate': Decimal('50'), 'description': 'Labor'}],
            'reference_number': '#100',
        })
        self.assertEqual(self.syncro.payments, [
            ("1", "100", 15000, "Quick"),
            ("2", "200", 2000, "Quick"),
        ])
        self.assertEqual([r.payment_id for r in service.results], ["PAY-100", "PAY-200"])

    def test_failure_for_one_customer_does_not_stop_the_next(self):
        def create_invoice(payload):
            if payload['customer_id'] == 'Z-1':
                raise InvoiceCreateFailed("Customer does not exist.")
            return "ZI-2"
        self.zoho.create_invoice.side_effect = create_invoice
        service = self.make_service()

        with self.assertLogs('syncro_zoho.services.invoice_sync', level='ERROR') as logs:
            counters = service.run()

        self.assertEqual(counters.invoices_processed, 2)
        self.assertEqual(counters.invoices_created, 1)
        self.assertEqual(counters.invoices_failed, 1)
        self.assertEqual(counters.payments_created, 1)
        self.assertEqual(self.syncro.payments, [("2", "200", 2000, "Quick")])
        self.assertIn("100", logs.output[0])
        self.assertIn("Z-1", logs.output[0])

    def test_payment_failure_keeps_invoice(self):
        self.syncro.create_payment = MagicMock(side_effect=PaymentCreateFailed("Invoice locked"))
        service = self.make_service()

        counters = service.run()

        self.assertEqual(counters.invoices_created, 2)
        self.assertEqual(counters.payments_failed, 2)
        self.assertEqual(counters.payments_created, 0)
        self.assertTrue(all(r.needs_reconciliation for r in service.results))

    def test_no_quick_pay(self):
        counters = self.make_service(quick_pay=False).run()

        self.assertEqual(counters.invoices_created, 2)
        self.assertEqual(counters.payments_created, 0)
        self.assertEqual(counters.payments_failed, 0)
        self.assertEqual(self.syncro.payments, [])

    def test_only_first_invoice_per_customer(self):
        self.syncro.invoices.append(invoice("101", "1"))
        self.syncro.line_items["101"] = [labor()]

        counters = self.make_service().run()

        self.assertEqual(counters.invoices_processed, 2)
        self.assertNotIn("101", [p[1] for p in self.syncro.payments])

    def test_customer_without_invoice_is_not_counted(self):
        self.syncro.links = self.links + [CustomerLink("3", "Z-3", "Initech")]
        counters = self.make_service().run()
        self.assertEqual(counters.invoices_processed, 2)

    def test_rerun_does_not_duplicate(self):
        self.make_service().run()
        second = self.make_service().run()

        self.assertEqual(second.invoices_processed, 0)
        self.assertEqual(self.zoho.create_invoice.call_count, 2)

    def test_line_item_fetch_failure_counts_as_failed(self):
        original = self.syncro.get_invoice_line_items

        def get_line_items(invoice_id):
            if invoice_id == "100":
                raise SourceRequestFailed("502 Bad Gateway")
            return original(invoice_id)
        self.syncro.get_invoice_line_items = get_line_items

        counters = self.make_service().run()

        self.assertEqual(counters.invoices_failed, 1)
        self.assertEqual(counters.invoices_created, 1)

    def test_invoice_without_line_items_is_not_sent(self):
        self.syncro.line_items["100"] = []

        counters = self.make_service().run()

        self.assertEqual(counters.invoices_failed, 1)
        self.assertEqual(self.zoho.create_invoice.call_count, 1)

    def test_source_listing_failure_ends_run_with_zero_counters(self):
        self.syncro.get_customer_links = MagicMock(side_effect=SourceRequestFailed("401 Unauthorized"))

        counters = self.make_service().run()

        self.assertEqual(counters.to_dict(), SyncCounters().to_dict())
        self.zoho.create_invoice.assert_not_called()

    def test_unexpected_invoice_error_does_not_stop_the_next_customer(self):
        def create_invoice(payload):
            if payload['customer_id'] == 'Z-1':
                raise RuntimeError("serializer blew up")
            return "ZI-2"
        self.zoho.create_invoice.side_effect = create_invoice
        service = self.make_service()

        with self.assertLogs('syncro_zoho.services.invoice_sync', level='ERROR') as logs:
            counters = service.run()

        self.assertEqual(counters.invoices_failed, 1)
        self.assertEqual(counters.invoices_created, 1)
        self.assertEqual(counters.payments_created, 1)
        self.assertIn("serializer blew up", logs.output[0])
        self.assertEqual(service.results[0].error_message, "serializer blew up")

    def test_unexpected_payment_error_is_flagged_for_reconciliation(self):
        self.syncro.invoices[0] = invoice("100", "1", "1E+30")
        service = self.make_service()

        with self.assertLogs('syncro_zoho.services.invoice_sync', level='ERROR'):
            counters = service.run()

        self.assertEqual(counters.to_dict(), {
            'invoices_processed': 2,
            'invoices_created': 2,
            'invoices_failed': 0,
            'payments_created': 1,
            'payments_failed': 1,
        })
        self.assertTrue(service.results[0].needs_reconciliation)
        self.assertEqual(self.syncro.payments, [("2", "200", 2000, "Quick")])

    def test_counters_belong_to_the_context(self):
        first = self.make_service()
        second = self.make_service()
        self.assertIsNot(first.counters, second.counters)


class TestInvoiceSyncWithSyncroClient(BaseTestCase):
    """Runs the service against the Syncro client with canned HTTP responses"""

    def test_malformed_invoice_does_not_stop_other_customers(self):
        http = self.mock_http(
            self.response(200, {"customers": [
                {"id": 1, "business_name": "Acme", "properties": {"Zoho Books ID": "Z-1"}},
                {"id": 2, "business_name": "Globex", "properties": {"Zoho Books ID": "Z-2"}},
            ]}),
            self.response(200, {"invoices": [
                {"id": 10, "customer_id": 1, "number": "10", "total": None},
                {"id": 20, "customer_id": 2, "number": "20", "total": "50.00"},
            ]}),
            self.response(200, {"invoice": {"id": 20, "line_items": [
                {"product_id": 42, "quantity": 1, "price": "50.00", "name": "Labor"},
            ]}}),
            self.response(200, {"payment": {"id": 7}}),
        )
        zoho = MagicMock()
        zoho.create_invoice.return_value = "ZI-20"
        context = SyncContext(
            syncro=Syncro(self.syncro_settings, http),
            zoho_books=zoho,
            mapping_table=ProductMappingTable([ProductMapping("DEFAULT", "I0", "Misc", False)]),
            today=date(2026, 3, 17),
        )

        with self.assertLogs('syncro_zoho.services.syncro', level='WARNING'):
            counters = InvoiceSyncService(context).run()

        self.assertEqual(counters.invoices_processed, 1)
        self.assertEqual(counters.invoices_created, 1)
        self.assertEqual(counters.payments_created, 1)
        self.assertEqual(zoho.create_invoice.call_args[0][0]['customer_id'], 'Z-2')


if __name__ == '__main__':
    unittest.main()
