"""Pohoda mServer client: XML data packs over HTTP."""

from __future__ import annotations

import base64
from datetime import date
from typing import Any
from uuid import uuid4
from xml.etree import ElementTree as ET

import httpx
import structlog

from pohoda_digest.models import parse_decimal

logger = structlog.get_logger(__name__)

_SCHEMA = "http://www.stormware.cz/schema/version_2/{}.xsd"

NS = {
    "dat": _SCHEMA.format("data"),
    "rsp": _SCHEMA.format("response"),
    "lst": _SCHEMA.format("list"),
    "ftr": _SCHEMA.format("filter"),
    "inv": _SCHEMA.format("invoice"),
    "typ": _SCHEMA.format("type"),
}

for _prefix, _uri in NS.items():
    ET.register_namespace(_prefix, _uri)

REQUEST_ENCODING = "Windows-1250"

# VAT levels in a homeCurrency block; each contributes its *Sum or base + VAT.
_VAT_LEVELS = ("priceLow", "priceHigh", "price3")


class MServerError(Exception):
    """Base exception for mServer errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(MServerError):
    """Authentication failed."""

    pass


def _q(prefixed: str) -> str:
    prefix, local = prefixed.split(":", 1)
    return f"{{{NS[prefix]}}}{local}"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text(parent: ET.Element | None, path: str) -> str | None:
    if parent is None:
        return None
    found = parent.find(path, NS)
    if found is None or found.text is None:
        return None
    value = found.text.strip()
    return value or None


def build_list_invoice_request(
    ico: str,
    application: str,
    date_from: date | None = None,
    date_till: date | None = None,
    invoice_type: str = "issuedInvoice",
    request_id: str | None = None,
) -> bytes:
    """Build a ``listInvoiceRequest`` data pack."""
    request_id = request_id or uuid4().hex[:12]
    root = ET.Element(
        _q("dat:dataPack"),
        {
            "version": "2.0",
            "id": request_id,
            "ico": ico,
            "application": application,
            "note": "Invoice listing",
        },
    )
    item = ET.SubElement(root, _q("dat:dataPackItem"), {"version": "2.0", "id": f"{request_id}-1"})
    request = ET.SubElement(
        item,
        _q("lst:listInvoiceRequest"),
        {"version": "2.0", "invoiceVersion": "2.0", "invoiceType": invoice_type},
    )
    request_invoice = ET.SubElement(request, _q("lst:requestInvoice"))
    if date_from or date_till:
        flt = ET.SubElement(request_invoice, _q("ftr:filter"))
        if date_from:
            ET.SubElement(flt, _q("ftr:dateFrom")).text = date_from.isoformat()
        if date_till:
            ET.SubElement(flt, _q("ftr:dateTill")).text = date_till.isoformat()
    return ET.tostring(root, encoding=REQUEST_ENCODING, xml_declaration=True)


def _check_state(element: ET.Element, what: str) -> None:
    if element.get("state") == "error":
        note = element.get("note") or "no details"
        raise MServerError(f"mServer {what} error: {note}", details=note)


def _home_currency(block: ET.Element | None) -> dict[str, Any]:
    if block is None:
        return {}
    values: dict[str, Any] = {}
    for child in block:
        if child.text and child.text.strip():
            values[_local_name(child.tag)] = child.text.strip()
    total = parse_decimal(values.get("priceNone"))
    for level in _VAT_LEVELS:
        if f"{level}Sum" in values:
            total += parse_decimal(values[f"{level}Sum"])
        else:
            total += parse_decimal(values.get(level)) + parse_decimal(values.get(f"{level}VAT"))
    total += parse_decimal(_text(block, "typ:round/typ:priceRound"))
    values["priceSum"] = str(total)
    return values


def _foreign_currency(block: ET.Element | None) -> dict[str, Any]:
    if block is None:
        return {}
    code = _text(block, "typ:currency/typ:ids")
    if not code:
        return {}
    return {
        "currency": {"ids": code},
        "rate": _text(block, "typ:rate"),
        "priceSum": _text(block, "typ:priceSum") or "0",
    }


def _parse_invoice(element: ET.Element) -> dict[str, Any]:
    header = element.find("inv:invoiceHeader", NS)
    summary = element.find("inv:invoiceSummary", NS)
    partner = header.find("inv:partnerIdentity/typ:address", NS) if header is not None else None
    cancelled = header is not None and header.find("inv:cancel", NS) is not None

    raw: dict[str, Any] = {
        "id": _text(header, "inv:id"),
        "number": _text(header, "inv:number/typ:numberRequested"),
        "invoiceType": _text(header, "inv:invoiceType"),
        "date": _text(header, "inv:date"),
        "dateDue": _text(header, "inv:dateDue"),
        "partnerIdentity": {
            "address": {
                "name": _text(partner, "typ:company") or _text(partner, "typ:name"),
                "ico": _text(partner, "typ:ico"),
            }
        },
        "state": "cancelled" if cancelled else "active",
        "liquidation": _text(header, "inv:liquidation/typ:amountHome"),
    }
    if summary is not None:
        raw["homeCurrency"] = _home_currency(summary.find("inv:homeCurrency", NS))
        foreign = _foreign_currency(summary.find("inv:foreignCurrency", NS))
        if foreign:
            raw["foreignCurrency"] = foreign
    return raw


def parse_invoice_list(content: bytes) -> list[dict[str, Any]]:
    """Parse a ``responsePack`` holding ``listInvoice`` results into raw mappings."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise MServerError(f"Malformed mServer response: {e}") from e

    if _local_name(root.tag) != "responsePack":
        raise MServerError(f"Unexpected mServer response root: {_local_name(root.tag)}")
    _check_state(root, "response")

    invoices: list[dict[str, Any]] = []
    for item in root.findall("rsp:responsePackItem", NS):
        _check_state(item, "response item")
        for listing in item.findall("lst:listInvoice", NS):
            _check_state(listing, "invoice list")
            invoices.extend(_parse_invoice(inv) for inv in listing.findall("lst:invoice", NS))
    return invoices


class MServerClient:
    """Synchronous client for the Pohoda mServer HTTP interface."""

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        ico: str = "",
        application: str = "pohoda-digest",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ico = ico
        self.application = application
        self._username = username
        self._password = password
        self._timeout = timeout
        self._client = http_client

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> MServerClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _get_headers(self) -> dict[str, str]:
        credentials = f"{self._username}:{self._password}".encode()
        return {
            "STW-Authorization": "Basic " + base64.b64encode(credentials).decode("ascii"),
            "STW-Application": self.application,
            "Content-Type": f"text/xml; charset={REQUEST_ENCODING}",
        }

    def _request(self, method: str, path: str, content: bytes | None = None) -> httpx.Response:
        client = self._get_client()
        try:
            response = client.request(method, path, content=content, headers=self._get_headers())
        except httpx.HTTPError as e:
            raise MServerError(f"mServer request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Invalid credentials", status_code=401)
        if response.status_code >= 400:
            raise MServerError(
                f"mServer returned HTTP {response.status_code}",
                status_code=response.status_code,
                details=response.text[:500],
            )
        return response

    def status(self) -> dict[str, str]:
        """Return the mServer status document as a flat mapping."""
        response = self._request("GET", "/status")
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError:
            return {}
        return {
            _local_name(child.tag): (child.text or "").strip()
            for child in root
        }

    def list_invoices(
        self,
        date_from: date | None = None,
        date_till: date | None = None,
        invoice_type: str = "issuedInvoice",
    ) -> list[dict[str, Any]]:
        """List invoices of the given type within the date range."""
        payload = build_list_invoice_request(
            self.ico,
            self.application,
            date_from=date_from,
            date_till=date_till,
            invoice_type=invoice_type,
        )
        logger.debug(
            "listing_invoices",
            invoice_type=invoice_type,
            date_from=date_from.isoformat() if date_from else None,
            date_till=date_till.isoformat() if date_till else None,
        )
        response = self._request("POST", "/xml", content=payload)
        invoices = parse_invoice_list(response.content)
        logger.info("invoices_listed", invoice_type=invoice_type, count=len(invoices))
        return invoices

