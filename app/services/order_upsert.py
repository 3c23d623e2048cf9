"""
Order upsert engine.

One call = one transaction: resolve the customer, validate line items, insert-or-update
the order row keyed on the business order_id, replace its items wholesale, commit.
Any failure rolls the whole thing back.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.http.requests import OrderLineInput, OrderPatch, OrderVariables
from app.models import ORDER_FLAG_FIELDS, ORDER_TEXT_FIELDS, Order, OrderItem
from app.services.customer_resolver import resolve_customer
from app.services.errors import OrderSyncError, TransactionRollback, ValidationError
from app.services.product_resolver import get_active_product

logger = logging.getLogger(__name__)

# Dialect-native INSERT .. ON CONFLICT builders
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_NOT_NULL_PATCH_FIELDS = set(ORDER_FLAG_FIELDS) | {"payment_mode", "order_status", "total_amount"}

_CENTS = Decimal("0.01")


def _unit_price(line: OrderLineInput) -> Decimal:
    """Rounded to the stored precision so total_price = quantity x unit_price holds after storage."""
    if line.unit_price is None:
        return Decimal("0.00")
    return line.unit_price.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _shopify_lines(db: Session, lines: List[OrderLineInput]) -> List[dict]:
    """Every line must map to an active product; one miss fails the whole order."""
    out = []
    for line in lines:
        product = get_active_product(db, line.product_code)
        _require_variants(line)
        out.append({
            "product_id": product.id,
            "selected_colors": line.selected_colors,
            "selected_sizes": line.selected_sizes,
            "quantity": 1,  # Shopify already repeats line items per unit
            "unit_price": _unit_price(line),
        })
    return out


def _manual_lines(db: Session, lines: List[OrderLineInput]) -> List[dict]:
    """Caller-supplied product ids are trusted; product codes are looked up."""
    out = []
    for line in lines:
        product_id = line.product_id
        if product_id is None and line.product_code:
            product_id = get_active_product(db, line.product_code).id
        if product_id is None:
            raise ValidationError.missing_fields(["orderItems.productId"])
        _require_variants(line)
        quantity = line.quantity or 1
        if quantity < 1:
            raise ValidationError(f"Quantity must be positive, got {quantity}", missing=["orderItems.quantity"])
        out.append({
            "product_id": product_id,
            "selected_colors": line.selected_colors,
            "selected_sizes": line.selected_sizes,
            "quantity": quantity,
            "unit_price": _unit_price(line),
        })
    return out


def _require_variants(line: OrderLineInput) -> None:
    missing = []
    if not line.selected_colors:
        missing.append("orderItems.selectedColors")
    if not line.selected_sizes:
        missing.append("orderItems.selectedSizes")
    if missing:
        raise ValidationError.missing_fields(missing)


def _order_values(variables: OrderVariables, customer_id: int) -> dict:
    values = {
        "customer_id": customer_id,
        "order_date": variables.parsed_date(),
        "state": variables.state,
        "total_amount": variables.total_amount,
        "payment_mode": variables.payment_mode,
        "order_status": variables.order_status or "New",
        "meta_data": variables.meta_data or {},
    }
    for field in ORDER_TEXT_FIELDS:
        values[field] = getattr(variables, field) or ""
    for field in ORDER_FLAG_FIELDS:
        values[field] = bool(getattr(variables, field))
    return values


def _upsert_order_row(db: Session, order_id: str, values: dict) -> int:
    """Single INSERT .. ON CONFLICT (order_id) DO UPDATE; returns the row's primary key."""
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Order upsert is not supported on {dialect}")
    stmt = insert(Order).values(order_id=order_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["order_id"],
        set_={**values, "updated_at": func.now()},
    )
    db.execute(stmt)
    return db.execute(select(Order.id).where(Order.order_id == order_id)).scalar_one()


def _replace_items(db: Session, order_pk: int, lines: List[dict]) -> None:
    db.query(OrderItem).filter(OrderItem.order_id == order_pk).delete(synchronize_session=False)
    for line in lines:
        db.add(OrderItem(
            order_id=order_pk,
            product_id=line["product_id"],
            selected_colors=list(line["selected_colors"]),
            selected_sizes=list(line["selected_sizes"]),
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            total_price=line["unit_price"] * line["quantity"],
        ))
    db.flush()


def get_order(db: Session, order_id: str) -> Optional[Order]:
    """Order by business id with customer and items+product loaded."""
    return (
        db.query(Order)
        .options(
            joinedload(Order.customer),
            selectinload(Order.items).joinedload(OrderItem.product),
        )
        .filter(Order.order_id == order_id)
        .populate_existing()
        .first()
    )


def create_or_update_order(db: Session, variables: OrderVariables, is_shopify: bool = False) -> dict:
    """
    Upsert one normalized order and replace its items.

    Shopify orders: every line must resolve to an active product (ProductNotFound
    otherwise), quantity is 1 per line, total is the source's declared total.
    Manual orders: lines pass through with quantity defaulting to 1 and price to 0.
    Returns {"success", "order", "isUpdate", "message"}.
    """
    try:
        customer = resolve_customer(
            db,
            contact_no=variables.contact_no,
            customer_name=variables.customer_name,
            shopify_customer_id=variables.shopify_customer_id,
            email=variables.email,
            state=variables.state,
            address=variables.address,
            city=variables.city,
            country=variables.country,
        )

        if is_shopify:
            lines = _shopify_lines(db, variables.order_items)
        else:
            lines = _manual_lines(db, variables.order_items)

        # Informational only; the write below is a single atomic upsert
        is_update = db.execute(
            select(Order.id).where(Order.order_id == variables.order_id)
        ).scalar_one_or_none() is not None

        order_pk = _upsert_order_row(db, variables.order_id, _order_values(variables, customer.id))
        _replace_items(db, order_pk, lines)
        db.commit()
    except OrderSyncError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Order %s rolled back: %s", variables.order_id, e)
        raise TransactionRollback(f"Database operation failed: {e}", cause=e) from e
    except Exception:
        db.rollback()
        raise

    order = get_order(db, variables.order_id)
    logger.info(
        "%s order %s (%s item(s), source=%s)",
        "Updated" if is_update else "Created",
        variables.order_id,
        len(lines),
        "shopify" if is_shopify else "manual",
    )
    return {
        "success": True,
        "order": order,
        "isUpdate": is_update,
        "message": "Order updated successfully" if is_update else "Order created successfully",
    }


def apply_order_patch(db: Session, order: Order, patch: OrderPatch) -> Order:
    """Set only the fields present in the patch. Items are never touched here."""
    for field, value in patch.model_dump(exclude_unset=True).items():
        if value is None and field in _NOT_NULL_PATCH_FIELDS:
            continue
        setattr(order, field, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise TransactionRollback(f"Database operation failed: {e}", cause=e) from e
    return get_order(db, order.order_id)


def _money(value) -> float:
    return float(value) if value is not None else 0.0


def serialize_order(order: Order) -> dict:
    customer = order.customer
    data = {
        "id": order.id,
        "orderId": order.order_id,
        "customerId": order.customer_id,
        "orderDate": order.order_date.isoformat() if order.order_date else None,
        "state": order.state,
        "totalAmount": _money(order.total_amount),
        "paymentMode": order.payment_mode.value if order.payment_mode else None,
        "orderStatus": order.order_status,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
        "customer": {
            "id": customer.id,
            "customerName": customer.customer_name,
            "contactNo": customer.contact_no,
            "shopifyCustomerId": customer.shopify_customer_id,
            "email": customer.email,
            "state": customer.state,
            "city": customer.city,
            "country": customer.country,
        } if customer else None,
        "orderItems": [
            {
                "id": item.id,
                "productId": item.product_id,
                "productCode": item.product.product_code if item.product else None,
                "productName": item.product.product_name if item.product else None,
                "selectedColors": item.selected_colors,
                "selectedSizes": item.selected_sizes,
                "quantity": item.quantity,
                "unitPrice": _money(item.unit_price),
                "totalPrice": _money(item.total_price),
            }
            for item in order.items
        ],
    }
    for field in ORDER_TEXT_FIELDS + ORDER_FLAG_FIELDS:
        data[_camel(field)] = getattr(order, field)
    return data


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)
