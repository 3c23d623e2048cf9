"""
Pydantic schemas for order payloads, bulk rows and patch requests (Http/Requests).

JSON keys are camelCase (``orderId``, ``contactNo``); attributes are snake_case.
Either form is accepted on input.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models import PaymentMode


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_str(v: Any) -> Any:
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (int, float, Decimal)):
        return str(v)
    return v


# Order Schemas
class OrderLineInput(CamelModel):
    product_id: Optional[int] = None
    product_code: Optional[str] = None
    selected_colors: List[str] = Field(default_factory=list)
    selected_sizes: List[str] = Field(default_factory=list)
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None

    @field_validator("selected_colors", "selected_sizes", mode="before")
    @classmethod
    def split_single_value(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("unit_price", mode="before")
    @classmethod
    def price_from_float(cls, v):
        if v == "":
            return None
        return str(v) if isinstance(v, float) else v

    @field_validator("selected_colors", "selected_sizes")
    @classmethod
    def strip_values(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]


class OrderVariables(CamelModel):
    """Canonical order record produced by the normalizer and consumed by the upsert engine."""

    order_id: str
    customer_name: str
    contact_no: str
    email: Optional[str] = None
    shopify_customer_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    date: Optional[str] = None
    state: Optional[str] = None
    order_items: List[OrderLineInput]
    total_amount: Decimal = Decimal("0")
    payment_mode: PaymentMode = PaymentMode.PAID
    order_status: str = "New"

    order_confirmation: str = ""
    comments: str = ""
    review_taken: str = ""
    customer_review: str = ""
    product_review: str = ""
    return_reason: str = ""
    shipping_adjustment: str = ""
    return_status: str = ""
    exchange_status: str = ""
    whatsapp_notification_failed_reason: str = ""
    tracking_url: str = ""

    process_order: bool = False
    order_packed: bool = False
    rto_received: bool = False
    damaged: bool = False
    delivered: bool = False
    is_rto: bool = False
    is_return: bool = False
    return_initiated: bool = False
    return_picked: bool = False
    return_delivered: bool = False

    meta_data: Optional[dict] = Field(default=None, alias="meta_data")

    @field_validator("order_id", "contact_no", "shopify_customer_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _as_str(v)

    @field_validator("total_amount", mode="before")
    @classmethod
    def default_total(cls, v):
        if v in (None, ""):
            return Decimal("0")
        return str(v) if isinstance(v, float) else v

    @field_validator("payment_mode", mode="before")
    @classmethod
    def default_payment_mode(cls, v):
        if not v:
            return PaymentMode.PAID
        if isinstance(v, PaymentMode):
            return v
        return str(v).strip().upper()

    @field_validator("order_status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or "New"

    def parsed_date(self) -> Optional[datetime]:
        if not self.date:
            return None
        parsed = datetime.fromisoformat(self.date.replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            # stored as naive UTC
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed


class BulkOrderRow(BaseModel):
    """One row of an operator CSV export (snake_case columns)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    order_id: Optional[str] = None
    contact_no: Optional[str] = None
    customer_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    date: Optional[str] = None
    state: Optional[str] = None
    item: Optional[str] = None
    color1: Optional[str] = None
    color2: Optional[str] = None
    color3: Optional[str] = None
    size: Optional[str] = None
    qty: Optional[int] = None
    amount: Optional[Decimal] = None
    payment_mode: Optional[str] = None
    order_confirmation: Optional[str] = None
    comments: Optional[str] = Field(default=None, alias="reason")
    order_status: Optional[str] = None
    process_order: bool = False
    order_packed: bool = False
    delivered: bool = False
    is_rto: bool = Field(default=False, alias="rtor")
    is_return: bool = Field(default=False, alias="return")
    review_taken: Optional[str] = None
    customer_review: Optional[str] = None
    product_review: Optional[str] = None
    whatsapp_notification_failed_reason: Optional[str] = None

    @field_validator("order_id", "contact_no", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        return _as_str(v)

    @field_validator(
        "process_order", "order_packed", "delivered", "is_rto", "is_return", mode="before"
    )
    @classmethod
    def blank_is_false(cls, v):
        if v is None or v == "":
            return False
        return v

    @field_validator("qty", mode="before")
    @classmethod
    def blank_qty(cls, v):
        if v == "":
            return None
        return int(v) if isinstance(v, float) and v.is_integer() else v

    @field_validator("amount", mode="before")
    @classmethod
    def blank_amount(cls, v):
        if v == "":
            return None
        return str(v) if isinstance(v, float) else v


# Patch Schemas
class CustomerPatch(CamelModel):
    """Updatable customer fields. Only fields present in the request are applied."""

    customer_name: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None

    @field_validator("contact_no", mode="before")
    @classmethod
    def coerce_contact(cls, v):
        return _as_str(v)


class OrderPatch(CamelModel):
    """Updatable order fields. Line items are replaced only through an order upsert."""

    order_date: Optional[datetime] = None
    state: Optional[str] = None
    total_amount: Optional[Decimal] = None
    payment_mode: Optional[PaymentMode] = None
    order_status: Optional[str] = None

    order_confirmation: Optional[str] = None
    comments: Optional[str] = None
    review_taken: Optional[str] = None
    customer_review: Optional[str] = None
    product_review: Optional[str] = None
    return_reason: Optional[str] = None
    shipping_adjustment: Optional[str] = None
    return_status: Optional[str] = None
    exchange_status: Optional[str] = None
    whatsapp_notification_failed_reason: Optional[str] = None
    tracking_url: Optional[str] = None

    process_order: Optional[bool] = None
    order_packed: Optional[bool] = None
    rto_received: Optional[bool] = None
    damaged: Optional[bool] = None
    delivered: Optional[bool] = None
    is_rto: Optional[bool] = None
    is_return: Optional[bool] = None
    return_initiated: Optional[bool] = None
    return_picked: Optional[bool] = None
    return_delivered: Optional[bool] = None
