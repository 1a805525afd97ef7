import logging
from datetime import date
from typing import Callable, List

from syncro_zoho.exceptions import (
    NetworkFailed,
    PaymentCreateFailed,
    SourceRequestFailed,
    UnexpectedResponseShape,
)
from syncro_zoho.models.responses import (
    Page,
    SyncroCustomer,
    parse_created_payment,
    parse_customers_page,
    parse_invoice_line_items,
    parse_invoices_page,
)
from syncro_zoho.models.sync_models import CustomerLink, SourceInvoice, SourceLineItem
from syncro_zoho.services.http_client import HttpClient, HttpResponse

logger = logging.getLogger(__name__)

# Guards against a server that keeps reporting more pages
MAX_PAGES = 500


class Syncro:
    """
    A class to interact with the Syncro MSP API: customers, unpaid invoices,
    invoice line items and payments.
    """

    def __init__(self, settings, http: HttpClient, domain="syncromsp.com"):
        """
        Args:
            settings (SyncroSettings): API key and subdomain.
            http (HttpClient): Transport.
            domain (str): Syncro host domain.
        """
        self.settings = settings
        self.http = http
        self.api_base_url = f"https://{settings.subdomain}.{domain}/api/v1"

    def _headers(self):
        return {"Authorization": f"Bearer {self.settings.api_key}"}

    def make_request(self, endpoint, method="GET", data=None, params=None) -> HttpResponse:
        """
        Make a request to the Syncro API.

        Raises:
            NetworkFailed: If the request never completed.
        """
        url = f"{self.api_base_url}/{endpoint.lstrip('/')}"
        return self.http.request(method, url, headers=self._headers(), params=params, json_body=data)

    def _get(self, endpoint, params=None):
        """GET returning the JSON body, raising SourceRequestFailed otherwise."""
        try:
            response = self.make_request(endpoint, params=params)
        except NetworkFailed as e:
            raise SourceRequestFailed(f"Syncro GET {endpoint} failed: {e}") from e
        if not response.ok:
            raise SourceRequestFailed(f"Syncro GET {endpoint} failed: {response.status_code} {response.text[:500]}")
        return response.body

    def _get_all_pages(self, endpoint, params, parse_page: Callable[[object], Page]) -> list:
        items = []
        page = 1
        while page <= MAX_PAGES:
            query = dict(params or {})
            query["page"] = page
            body = self._get(endpoint, params=query)
            try:
                parsed = parse_page(body)
            except UnexpectedResponseShape as e:
                raise SourceRequestFailed(f"Syncro GET {endpoint} page {page}: {e}") from e

            items.extend(parsed.items)
            for record in parsed.skipped:
                logger.warning(f"Skipped unreadable record {record.record_id} in {endpoint} page {page}: {record.reason}")
            if page >= parsed.total_pages:
                break
            page += 1
        else:
            logger.warning(f"Stopped reading {endpoint} after {MAX_PAGES} pages")
        return items

    def get_customers(self) -> List[SyncroCustomer]:
        """Retrieve every customer, all pages."""
        customers = self._get_all_pages("customers", None, parse_customers_page)
        logger.info(f"Fetched {len(customers)} customers from Syncro")
        return customers

    def get_customer_links(self, property_name) -> List[CustomerLink]:
        """
        Customers carrying a Zoho Books id in the given custom property.

        Customers without the property are left out; that is how a customer
        opts out of the sync.
        """
        links = []
        for customer in self.get_customers():
            target_id = customer.property_value(property_name)
            if not target_id:
                logger.debug(f"Customer {customer.customer_id} ({customer.name}) has no '{property_name}' - skipped")
                continue
            links.append(CustomerLink(
                source_customer_id=customer.customer_id,
                target_customer_id=target_id,
                name=customer.name,
            ))
        logger.info(f"{len(links)} customers linked to Zoho Books via '{property_name}'")
        return links

    def get_unpaid_invoices(self, since: date) -> List[SourceInvoice]:
        """
        Retrieve unpaid invoices updated on or after ``since``.

        Args:
            since (date): Lower bound for the invoice's last update.
        """
        params = {"unpaid": "true", "since_updated_at": since.isoformat()}
        invoices = self._get_all_pages("invoices", params, parse_invoices_page)
        logger.info(f"Fetched {len(invoices)} unpaid invoices updated since {since.isoformat()}")
        return invoices

    def get_invoice_line_items(self, invoice_id) -> List[SourceLineItem]:
        """Retrieve the line items of one invoice."""
        body = self._get(f"invoices/{invoice_id}")
        try:
            return parse_invoice_line_items(body)
        except UnexpectedResponseShape as e:
            raise SourceRequestFailed(f"Syncro invoice {invoice_id}: {e}") from e

    def create_payment(self, customer_id, invoice_id, amount_cents, payment_method) -> str:
        """
        Record a payment against an invoice.

        Args:
            customer_id (str): Syncro customer id.
            invoice_id (str): Syncro invoice id.
            amount_cents (int): Amount in cents.
            payment_method (str): Payment method name.

        Returns:
            str: The Syncro payment id.

        Raises:
            PaymentCreateFailed: On network errors, error responses or an
                unexpected response body.
        """
        payment_data = {
            "customer_id": customer_id,
            "invoice_id": invoice_id,
            "amount_cents": amount_cents,
            "payment_method": payment_method,
        }
        logger.info(f"Creating payment with data: {payment_data}")
        try:
            response = self.make_request("payments", method="POST", data=payment_data)
        except NetworkFailed as e:
            raise PaymentCreateFailed(f"Error creating payment for invoice {invoice_id}: {e}") from e

        if not response.ok:
            raise PaymentCreateFailed(
                f"Error creating payment for invoice {invoice_id}: {response.status_code} {response.text[:500]}"
            )

        try:
            payment_id = parse_created_payment(response.body)
        except UnexpectedResponseShape as e:
            raise PaymentCreateFailed(f"Error creating payment for invoice {invoice_id}: {e}") from e

        logger.info(f"Payment created successfully: {payment_id}")
        return payment_id
