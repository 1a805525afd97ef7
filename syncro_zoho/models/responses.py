"""
Typed shapes for the Zoho Books and Syncro responses we depend on.

Each parser either returns a fully populated dataclass or raises
UnexpectedResponseShape, so business logic never sees a half-parsed payload.
Listing pages are the exception: a malformed record is set aside in
Page.skipped and the well-formed ones are still returned.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from syncro_zoho.exceptions import UnexpectedResponseShape
from syncro_zoho.helpers.decimal_helpers import to_decimal
from syncro_zoho.models.sync_models import SourceInvoice, SourceLineItem


def _require_dict(body: Any, what: str) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise UnexpectedResponseShape(what, "<body>", body)
    return body


def _require(obj: Dict[str, Any], key: str, what: str) -> Any:
    value = obj.get(key)
    if value is None or value == "":
        raise UnexpectedResponseShape(what, key, obj)
    return value


def _require_list(obj: Dict[str, Any], key: str, what: str) -> List[Any]:
    value = obj.get(key)
    if not isinstance(value, list):
        raise UnexpectedResponseShape(what, key, obj)
    return value


def _decimal_field(obj: Dict[str, Any], key: str, what: str):
    try:
        return to_decimal(obj.get(key), key)
    except ValueError:
        raise UnexpectedResponseShape(what, key, obj)


@dataclass(frozen=True)
class TokenGrant:
    """Zoho accounts token endpoint response."""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None

    @classmethod
    def from_response(cls, body: Any) -> 'TokenGrant':
        what = "token"
        body = _require_dict(body, what)
        access_token = _require(body, 'access_token', what)
        try:
            expires_in = int(_require(body, 'expires_in', what))
        except (TypeError, ValueError):
            raise UnexpectedResponseShape(what, 'expires_in', body)
        return cls(
            access_token=str(access_token),
            expires_in=expires_in,
            refresh_token=body.get('refresh_token') or None,
        )


@dataclass(frozen=True)
class SyncroCustomer:
    """A Syncro customer with its custom properties."""
    customer_id: str
    name: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, obj: Any) -> 'SyncroCustomer':
        what = "customer"
        obj = _require_dict(obj, what)
        properties = obj.get('properties') or {}
        if not isinstance(properties, dict):
            raise UnexpectedResponseShape(what, 'properties', obj)
        name = obj.get('business_name') or obj.get('fullname') or obj.get('business_and_full_name') or ""
        return cls(
            customer_id=str(_require(obj, 'id', what)),
            name=str(name).strip(),
            properties=properties,
        )

    def property_value(self, property_name: str) -> Optional[str]:
        """Return the trimmed property value, None when absent or blank."""
        value = self.properties.get(property_name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


@dataclass(frozen=True)
class SkippedRecord:
    """A listing record that could not be parsed."""
    record_id: Optional[str]
    reason: str


def _parse_records(records: List[Any], parse) -> Tuple[List[Any], List[SkippedRecord]]:
    items, skipped = [], []
    for record in records:
        try:
            items.append(parse(record))
        except UnexpectedResponseShape as e:
            record_id = record.get('id') if isinstance(record, dict) else None
            skipped.append(SkippedRecord(
                record_id=None if record_id is None else str(record_id),
                reason=f"missing or invalid '{e.missing}'",
            ))
    return items, skipped


@dataclass(frozen=True)
class Page:
    """One page of a paginated Syncro listing."""
    items: List[Any]
    page: int
    total_pages: int
    skipped: List[SkippedRecord] = field(default_factory=list)


def _page_meta(body: Dict[str, Any], what: str) -> Dict[str, int]:
    meta = body.get('meta') or {}
    if not isinstance(meta, dict):
        raise UnexpectedResponseShape(what, 'meta', body)
    try:
        return {
            'page': int(meta.get('page') or 1),
            'total_pages': int(meta.get('total_pages') or 1),
        }
    except (TypeError, ValueError):
        raise UnexpectedResponseShape(what, 'meta.total_pages', body)


def parse_customers_page(body: Any) -> Page:
    what = "customer list"
    body = _require_dict(body, what)
    customers, skipped = _parse_records(_require_list(body, 'customers', what), SyncroCustomer.from_json)
    return Page(items=customers, skipped=skipped, **_page_meta(body, what))


def parse_invoice(obj: Any) -> SourceInvoice:
    what = "invoice"
    obj = _require_dict(obj, what)
    return SourceInvoice(
        invoice_id=str(_require(obj, 'id', what)),
        customer_id=str(_require(obj, 'customer_id', what)),
        number=str(obj.get('number') or ""),
        total=_decimal_field(obj, 'total', what),
        updated_at=obj.get('updated_at'),
    )


def parse_invoices_page(body: Any) -> Page:
    what = "invoice list"
    body = _require_dict(body, what)
    invoices, skipped = _parse_records(_require_list(body, 'invoices', what), parse_invoice)
    return Page(items=invoices, skipped=skipped, **_page_meta(body, what))


def parse_line_item(obj: Any) -> SourceLineItem:
    what = "line item"
    obj = _require_dict(obj, what)
    product_id = obj.get('product_id')
    display_name = obj.get('name') or obj.get('item') or ""
    return SourceLineItem(
        product_id="" if product_id is None else str(product_id).strip(),
        quantity=_decimal_field(obj, 'quantity', what),
        unit_price=_decimal_field(obj, 'price', what),
        display_name=str(display_name).strip(),
    )


def parse_invoice_line_items(body: Any) -> List[SourceLineItem]:
    """Line items of a GET /invoices/{id} response."""
    what = "invoice detail"
    body = _require_dict(body, what)
    invoice = _require_dict(body.get('invoice'), what)
    return [parse_line_item(li) for li in _require_list(invoice, 'line_items', what)]


def zoho_error_message(body: Any) -> Optional[str]:
    """Return Zoho's error message when the body reports a non-zero code."""
    if not isinstance(body, dict):
        return None
    code = body.get('code')
    if code in (0, "0", None):
        return None
    return f"{body.get('message', 'Unknown error')} (code {code})"


def parse_created_invoice(body: Any) -> str:
    """Return the Zoho Books invoice id of a create response."""
    what = "invoice create"
    body = _require_dict(body, what)
    invoice = _require_dict(body.get('invoice'), what)
    return str(_require(invoice, 'invoice_id', what))


def parse_created_payment(body: Any) -> str:
    """Return the Syncro payment id of a create response."""
    what = "payment create"
    body = _require_dict(body, what)
    payment = body.get('payment', body)
    payment = _require_dict(payment, what)
    return str(_require(payment, 'id', what))
