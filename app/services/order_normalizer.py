"""
Normalize incoming order payloads into OrderVariables.

Three shapes are accepted:
- simple/manual entry (camelCase keys, as sent by the orders management screen),
- a Shopify order or orders/create webhook body (has customer, line_items and order_number),
- a Shopify customer export row combined with one of that customer's orders (full sync).
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.http.requests import OrderVariables
from app.models import PaymentMode
from app.services.errors import ValidationError
from app.services.product_resolver import resolve_product_code

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("orderId", "customerName", "contactNo", "orderItems")

COD_GATEWAY = "cash_on_delivery"

# Internal display status -> Shopify fulfillment shipment_status
SHIPMENT_STATUS: Dict[str, str] = {
    "LabelPrinted": "label_printed",
    "LabelPurchased": "label_purchased",
    "AttemptedDelivery": "attempted_delivery",
    "ReadyForPickup": "ready_for_pickup",
    "Confirmed": "confirmed",
    "InTransit": "in_transit",
    "OutForDelivery": "out_for_delivery",
    "Delivered": "delivered",
    "Failure": "failure",
}

SHIPMENT_STATUS_REVERSE: Dict[str, str] = {v: k for k, v in SHIPMENT_STATUS.items()}


def is_shopify_payload(data: Any) -> bool:
    return bool(
        isinstance(data, dict)
        and data.get("customer")
        and data.get("line_items")
        and data.get("order_number")
    )


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def split_variant_title(variant_title: Optional[str]) -> Tuple[str, str]:
    """'Black / XL' -> ('Black', 'XL'). Anything but two non-empty parts is rejected."""
    parts = [p.strip() for p in (variant_title or "").split("/")]
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            f"Variant title {variant_title!r} is not in 'color / size' format",
            missing=["selectedColors", "selectedSizes"],
        )
    return parts[0], parts[1]


def shopify_order_status(order: dict) -> str:
    """Display status from the first fulfillment's shipment_status, else fulfillment_status."""
    fulfillments = order.get("fulfillments") or []
    if fulfillments:
        shipment_status = (fulfillments[0] or {}).get("shipment_status")
        if shipment_status and shipment_status in SHIPMENT_STATUS_REVERSE:
            return SHIPMENT_STATUS_REVERSE[shipment_status]
    return order.get("fulfillment_status") or "New"


def shopify_payment_mode(order: dict) -> PaymentMode:
    gateways = order.get("payment_gateway_names") or []
    return PaymentMode.COD if gateways and gateways[0] == COD_GATEWAY else PaymentMode.PAID


def _tracking_url(order: dict) -> str:
    fulfillments = order.get("fulfillments") or []
    if fulfillments:
        return (fulfillments[0] or {}).get("tracking_url") or ""
    return ""


def shopify_line_items(order: dict, drop_unmatched: bool = False) -> List[dict]:
    """
    One canonical line per Shopify line item: resolved product code, [color], [size],
    quantity 1 and the line's own price. Unmatched SKUs keep product_code None (the
    upsert then fails the order) unless drop_unmatched is set.
    """
    lines = []
    for item in order.get("line_items") or []:
        code = resolve_product_code(item.get("sku"))
        if code is None and drop_unmatched:
            logger.debug("Skipping unmatched SKU %r on order %s", item.get("sku"), order.get("order_number"))
            continue
        color, size = split_variant_title(item.get("variant_title"))
        lines.append({
            "productCode": code,
            "selectedColors": [color],
            "selectedSizes": [size],
            "quantity": 1,
            "unitPrice": item.get("price") or 0,
        })
    return lines


def _customer_name(first: Any, last: Any) -> Optional[str]:
    return _clean(f"{first or ''} {last or ''}")


def _build(fields: Dict[str, Any]) -> OrderVariables:
    missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, "", [])]
    if missing:
        raise ValidationError.missing_fields(missing)
    try:
        variables = OrderVariables.model_validate(fields)
    except PydanticValidationError as e:
        bad = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError(f"Invalid order fields: {', '.join(bad)}", missing=bad) from e
    try:
        variables.parsed_date()
    except ValueError as e:
        raise ValidationError(f"Invalid order date {variables.date!r}", missing=["date"]) from e
    return variables


def prepare_shopify_order_data(data: dict) -> OrderVariables:
    """Shopify order / webhook body -> OrderVariables."""
    customer = data.get("customer") or {}
    billing = data.get("billing_address") or {}
    shipping = data.get("shipping_address") or {}
    default_address = customer.get("default_address") or {}
    return _build({
        "orderId": _clean(data.get("order_number")),
        "customerName": _customer_name(customer.get("first_name"), customer.get("last_name")),
        "contactNo": _clean(_first(data, "phone") or billing.get("phone") or customer.get("phone")),
        "email": customer.get("email") or data.get("email"),
        "shopifyCustomerId": _clean(customer.get("id")),
        "date": data.get("created_at"),
        "state": default_address.get("province") or shipping.get("province") or billing.get("province") or "",
        "orderItems": shopify_line_items(data),
        "totalAmount": data.get("total_price"),
        "paymentMode": shopify_payment_mode(data),
        "comments": data.get("note") or "",
        "orderStatus": shopify_order_status(data),
        "trackingUrl": _tracking_url(data),
        "meta_data": data,
    })


def prepare_custom_shopify_order_data(customer_row: dict, order: dict) -> Optional[OrderVariables]:
    """
    Customer export row + one of that customer's Shopify orders -> OrderVariables.
    Lines with unmatched SKUs are dropped; returns None when no line matched.
    """
    default_address = (order.get("customer") or {}).get("default_address") or {}
    fields = {
        "orderId": _clean(order.get("order_number")),
        "customerName": _customer_name(customer_row.get("First Name"), customer_row.get("Last Name")),
        "contactNo": _clean(customer_row.get("Phone") or customer_row.get("Default Address Phone")),
        "email": customer_row.get("Email") or None,
        "shopifyCustomerId": _clean(str(customer_row.get("Customer ID") or "").lstrip("'")),
        "address": customer_row.get("Default Address Address1") or None,
        "city": customer_row.get("Default Address City") or None,
        "country": customer_row.get("Default Address Country Code") or None,
        "date": order.get("created_at"),
        "state": default_address.get("province") or customer_row.get("Default Address Province Code") or "",
        "orderItems": shopify_line_items(order, drop_unmatched=True),
        "totalAmount": order.get("total_price"),
        "paymentMode": shopify_payment_mode(order),
        "comments": "",
        "orderStatus": shopify_order_status(order),
        "trackingUrl": _tracking_url(order),
        "meta_data": order,
    }
    if not fields["orderItems"]:
        return None
    return _build(fields)


def prepare_simple_order_data(data: dict) -> OrderVariables:
    """Manual entry payload -> OrderVariables with defaults for omitted fields."""
    fields = dict(data)
    fields["orderId"] = _clean(_first(data, "orderId", "order_id"))
    fields["customerName"] = _clean(_first(data, "customerName", "customer_name"))
    fields["contactNo"] = _clean(_first(data, "contactNo", "contact_no"))
    fields["orderItems"] = _first(data, "orderItems", "order_items") or []
    for snake in ("order_id", "customer_name", "contact_no", "order_items"):
        fields.pop(snake, None)
    return _build(fields)


def normalize_order_payload(data: Any) -> Tuple[OrderVariables, bool]:
    """Detect the payload shape and normalize it. Returns (variables, is_shopify)."""
    if not isinstance(data, dict):
        raise ValidationError.missing_fields(REQUIRED_FIELDS)
    if is_shopify_payload(data):
        return prepare_shopify_order_data(data), True
    return prepare_simple_order_data(data), False
