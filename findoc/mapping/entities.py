"""Extract parties and line items from analysis fields."""

from typing import Any

from findoc.mapping.field_parser import get_content, parse_currency, parse_numeric
from findoc.mapping.schema import LineItemData, PartyData


def _first_content(fields: dict[str, Any], *names: str) -> str | None:
    for name in names:
        content = get_content(fields.get(name))
        if content:
            return content
    return None


def extract_customer(fields: dict[str, Any]) -> PartyData:
    return PartyData(
        name=_first_content(fields, "CustomerName", "BillingAddressRecipient"),
        address=_first_content(fields, "CustomerAddress", "BillingAddress", "ShippingAddress"),
        recipient_name=_first_content(fields, "CustomerAddressRecipient", "CustomerName"),
        tax_id=_first_content(fields, "CustomerTaxId", "VatNumber", "TaxId"),
    )


def extract_vendor(fields: dict[str, Any]) -> PartyData:
    return PartyData(
        name=_first_content(fields, "VendorName"),
        address=_first_content(fields, "VendorAddress"),
        recipient_name=_first_content(fields, "VendorAddressRecipient", "VendorName"),
        tax_id=_first_content(fields, "VendorTaxId", "VendorVatNumber", "SupplierTaxId"),
    )


def _quantity(value: float | None) -> int:
    if value is None:
        return 0
    return max(0, int(round(value)))


def extract_line_items(items_field: dict[str, Any] | None) -> list[LineItemData]:
    """Line items from the ``Items`` array field.

    If the field has no array but does have text, that text becomes a single
    item so nothing the provider read is dropped.
    """
    if not items_field:
        return []

    entries = items_field.get("valueArray")
    if entries is None:
        entries = items_field.get("values")

    if entries is not None:
        items = []
        for entry in entries:
            props = entry.get("valueObject") or entry.get("properties") or {}
            items.append(
                LineItemData(
                    description=_first_content(props, "Description", "ProductCode"),
                    quantity=_quantity(parse_numeric(props.get("Quantity"))),
                    unit=get_content(props.get("Unit")),
                    unit_price=parse_currency(props.get("UnitPrice")).amount,
                    amount=parse_currency(props.get("Amount")).amount,
                )
            )
        return items

    content = get_content(items_field)
    if content:
        return [LineItemData(description=content)]
    return []
