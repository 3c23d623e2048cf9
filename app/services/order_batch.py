"""
Batch order ingestion and Shopify full sync.

Each item is normalized and upserted in its own transaction. A failing item is recorded
in ``errors`` and the batch moves on; nothing already committed is undone.
"""
import asyncio
import csv
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.http.requests import BulkOrderRow, OrderVariables
from app.services.errors import ShopifyAPIError, TransactionRollback, ValidationError
from app.services.order_normalizer import (
    is_shopify_payload,
    normalize_order_payload,
    prepare_custom_shopify_order_data,
)
from app.services.order_upsert import create_or_update_order, serialize_order
from app.services.product_resolver import resolve_product_code
from app.services.shopify_client import ShopifyClient

logger = logging.getLogger(__name__)

CUSTOMER_ORDERS_LIMIT = 100
DEFAULT_SYNC_BATCH_SIZE = 10
BATCH_PAUSE_SECONDS = 2.0

_DMY_DATE = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})\s*$")


def _error_entry(order_id: Any, customer_name: Any, contact_no: Any, error: Exception) -> dict:
    if isinstance(error, TransactionRollback):
        # keep SQL text out of the operator report; it is in the log
        cause = error.cause.__class__.__name__ if error.cause is not None else "storage error"
        reason = f"Database operation failed ({cause})"
    else:
        reason = str(error) or error.__class__.__name__
    return {
        "orderId": order_id,
        "customerName": customer_name,
        "contactNo": contact_no,
        "reason": reason,
    }


def _payload_identity(data: dict) -> tuple:
    """(orderId, customerName, contactNo) as far as a raw payload tells them."""
    if is_shopify_payload(data):
        customer = data.get("customer") or {}
        name = " ".join(str(p).strip() for p in (customer.get("first_name"), customer.get("last_name")) if p)
        phone = data.get("phone") or (data.get("billing_address") or {}).get("phone") or customer.get("phone")
        return data.get("order_number"), name or None, phone
    return (
        data.get("orderId") or data.get("order_id"),
        data.get("customerName") or data.get("customer_name"),
        data.get("contactNo") or data.get("contact_no"),
    )


def _upsert(db: Session, variables: OrderVariables, is_shopify: bool) -> dict:
    result = create_or_update_order(db, variables, is_shopify=is_shopify)
    return serialize_order(result["order"])


def submit_orders(db: Session, payloads: Iterable[Any]) -> Dict[str, list]:
    """Normalize + upsert each payload (manual or Shopify shape). Returns {results, errors}."""
    results: List[dict] = []
    errors: List[dict] = []
    for payload in payloads:
        identity = _payload_identity(payload if isinstance(payload, dict) else {})
        try:
            variables, is_shopify = normalize_order_payload(payload)
            results.append(_upsert(db, variables, is_shopify))
        except Exception as e:
            logger.warning("Order %s failed: %s", identity[0], e)
            errors.append(_error_entry(*identity, e))
    logger.info("Batch submit: %s succeeded, %s failed", len(results), len(errors))
    return {"results": results, "errors": errors}


def format_contact_no(contact_no: Any, country_code: Optional[str] = None) -> str:
    """Prefix the country code unless the number already starts with it."""
    code = country_code if country_code is not None else settings.DEFAULT_COUNTRY_CODE
    digits = str(contact_no).strip()
    if digits.startswith("+"):
        digits = digits[1:]
    return digits if digits.startswith(code) else f"{code}{digits}"


def format_bulk_date(value: Optional[str]) -> Optional[str]:
    """DD/MM/YYYY -> YYYY-MM-DD. Other values pass through unchanged."""
    if not value:
        return None
    match = _DMY_DATE.match(value)
    if not match:
        return value.strip()
    day, month, year = match.groups()
    return f"{year}-{int(month):02d}-{int(day):02d}"


def bulk_row_to_variables(row: BulkOrderRow, country_code: Optional[str] = None) -> OrderVariables:
    """Operator CSV row -> OrderVariables with one line built from item/colors/size/qty/amount."""
    if not row.contact_no:
        raise ValidationError("Contact number is required", missing=["contact_no"])
    quantity = row.qty or 1
    colors = [c for c in (row.color1, row.color2, row.color3) if c and c.strip()]
    line = {
        "productCode": resolve_product_code(row.item) or (row.item or "").strip() or None,
        "selectedColors": colors,
        "selectedSizes": [row.size] if row.size else [],
        "quantity": quantity,
        # amount is the row total
        "unitPrice": (row.amount / quantity) if row.amount is not None else None,
    }
    fields = {
        "orderId": row.order_id,
        "customerName": row.customer_name,
        "contactNo": format_contact_no(row.contact_no, country_code),
        "email": row.email,
        "address": row.address,
        "city": row.city,
        "country": row.country,
        "date": format_bulk_date(row.date),
        "state": row.state,
        "orderItems": [line],
        "totalAmount": row.amount,
        "paymentMode": row.payment_mode,
        "orderConfirmation": row.order_confirmation or "",
        "comments": row.comments or "",
        "orderStatus": row.order_status,
        "processOrder": row.process_order,
        "orderPacked": row.order_packed,
        "delivered": row.delivered,
        "isRto": row.is_rto,
        "isReturn": row.is_return,
        "reviewTaken": row.review_taken or "",
        "customerReview": row.customer_review or "",
        "productReview": row.product_review or "",
        "whatsappNotificationFailedReason": row.whatsapp_notification_failed_reason or "",
    }
    missing = [name for name in ("orderId", "customerName") if not fields[name]]
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
        raise ValidationError(f"Invalid order date {row.date!r}", missing=["date"]) from e
    return variables


def bulk_insert_orders(db: Session, rows: Iterable[dict], country_code: Optional[str] = None) -> Dict[str, list]:
    """Bulk CSV ingestion: clean contact numbers and dates, then upsert row by row."""
    results: List[dict] = []
    errors: List[dict] = []
    for raw in rows:
        raw = raw if isinstance(raw, dict) else {}
        contact_no = raw.get("contact_no")
        try:
            row = BulkOrderRow.model_validate(raw)
            if row.contact_no:
                contact_no = format_contact_no(row.contact_no, country_code)
            variables = bulk_row_to_variables(row, country_code)
            results.append(_upsert(db, variables, is_shopify=False))
        except PydanticValidationError as e:
            bad = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            errors.append(_error_entry(
                raw.get("order_id"), raw.get("customer_name"), contact_no,
                ValidationError(f"Invalid row fields: {', '.join(bad)}", missing=bad),
            ))
        except Exception as e:
            logger.warning("Bulk row %s failed: %s", raw.get("order_id"), e)
            errors.append(_error_entry(raw.get("order_id"), raw.get("customer_name"), contact_no, e))
    logger.info("Bulk insert: %s succeeded, %s failed", len(results), len(errors))
    return {"results": results, "errors": errors}


def load_customer_export(path: Optional[str] = None) -> List[Dict[str, str]]:
    """Read the Shopify customer export CSV used as the full-sync customer list."""
    csv_path = Path(path or settings.SHOPIFY_CUSTOMERS_FILE)
    with csv_path.open(newline="", encoding="utf-8-sig") as fh:
        rows = [row for row in csv.DictReader(fh) if row.get("Customer ID")]
    logger.info("Loaded %s customer(s) from %s", len(rows), csv_path)
    return rows


def _customer_id(row: Dict[str, Any]) -> str:
    # Shopify exports prefix ids with an apostrophe to keep spreadsheets from rounding them
    return str(row.get("Customer ID") or "").strip().lstrip("'")


async def _sync_customer(
    db: Session,
    client: ShopifyClient,
    row: Dict[str, Any],
    results: List[dict],
    errors: List[dict],
) -> int:
    """Fetch and upsert one customer's orders. Returns the number of skipped orders."""
    customer_id = _customer_id(row)
    data = await client.rate_limiter.execute(
        lambda: client.get_customer_orders(customer_id, CUSTOMER_ORDERS_LIMIT)
    )
    orders = data.get("orders") or []
    logger.info("Found %s order(s) for customer %s", len(orders), customer_id)
    skipped = 0
    for order in orders:
        contact_no = row.get("Phone") or row.get("Default Address Phone")
        customer_name = f"{row.get('First Name') or ''} {row.get('Last Name') or ''}".strip()
        try:
            variables = prepare_custom_shopify_order_data(row, order)
            if variables is None:
                skipped += 1
                continue
            results.append(_upsert(db, variables, is_shopify=True))
        except Exception as e:
            logger.warning("Order %s for customer %s failed: %s", order.get("order_number"), customer_id, e)
            errors.append(_error_entry(order.get("order_number"), customer_name, contact_no, e))
    return skipped


async def sync_customer_orders(
    db: Session,
    client: ShopifyClient,
    customers: List[Dict[str, Any]],
    batch_size: Optional[int] = None,
    batch_pause: float = BATCH_PAUSE_SECONDS,
    rate_limit_wait: Optional[float] = None,
) -> dict:
    """
    Full sync: for each customer in the export, pull their Shopify orders and upsert
    every order with at least one matched SKU. Orders with none are skipped, not failed.

    batch_size splits the customer list into slices with batch_pause seconds between
    them. A 429 on a customer pauses for rate_limit_wait seconds before the next one.
    """
    wait_on_429 = settings.SHOPIFY_RATE_LIMIT_WAIT if rate_limit_wait is None else rate_limit_wait
    size = batch_size if batch_size and batch_size > 0 else len(customers) or 1
    slices = [customers[i:i + size] for i in range(0, len(customers), size)]
    results: List[dict] = []
    errors: List[dict] = []
    skipped = 0
    processed = 0
    failed_customers = 0
    started = time.monotonic()

    logger.info("Starting order sync for %s customer(s) in %s batch(es)", len(customers), len(slices))
    for index, chunk in enumerate(slices, start=1):
        if len(slices) > 1:
            logger.info("Processing batch %s/%s", index, len(slices))
        for row in chunk:
            customer_id = _customer_id(row)
            if not customer_id:
                continue
            try:
                skipped += await _sync_customer(db, client, row, results, errors)
                processed += 1
            except ShopifyAPIError as e:
                failed_customers += 1
                errors.append(_error_entry(None, row.get("First Name"), row.get("Phone"), e))
                if e.rate_limited:
                    logger.warning("Rate limited on customer %s, waiting %ss", customer_id, wait_on_429)
                    await asyncio.sleep(wait_on_429)
                else:
                    logger.error("Error processing customer %s: %s", customer_id, e)
            except Exception as e:
                failed_customers += 1
                logger.error("Error processing customer %s: %s", customer_id, e)
                errors.append(_error_entry(None, row.get("First Name"), row.get("Phone"), e))
        if index < len(slices) and batch_pause > 0:
            await asyncio.sleep(batch_pause)

    elapsed = time.monotonic() - started
    message = (
        f"Orders synced successfully. Processed {processed} customers in {elapsed:.1f}s "
        f"with {failed_customers} errors."
    )
    logger.info(message)
    return {
        "results": results,
        "errors": errors,
        "skipped": skipped,
        "customersProcessed": processed,
        "customersFailed": failed_customers,
        "message": message,
    }
