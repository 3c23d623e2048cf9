"""
Order payload normalization tests
"""
from decimal import Decimal

import pytest

from app.models import PaymentMode
from app.services.errors import ValidationError
from app.services.order_normalizer import (
    SHIPMENT_STATUS,
    SHIPMENT_STATUS_REVERSE,
    normalize_order_payload,
    prepare_custom_shopify_order_data,
    shopify_order_status,
    split_variant_title,
)

from conftest import make_line_item, make_shopify_order


CUSTOMER_ROW = {
    "Customer ID": "7001",
    "First Name": "Asha",
    "Last Name": "Rao",
    "Email": "asha@example.com",
    "Phone": "+919876543210",
    "Default Address Address1": "12 MG Road",
    "Default Address City": "Bengaluru",
    "Default Address Country Code": "IN",
    "Default Address Phone": "",
    "Default Address Province Code": "KA",
}


class TestSimplePayload:

    def test_defaults_applied(self):
        variables, is_shopify = normalize_order_payload({
            "orderId": "A100",
            "customerName": "Jane",
            "contactNo": "9876543210",
            "orderItems": [{"productId": 1, "selectedColors": ["Black"], "selectedSizes": ["M"]}],
        })
        assert is_shopify is False
        assert variables.order_id == "A100"
        assert variables.payment_mode == PaymentMode.PAID
        assert variables.order_status == "New"
        assert variables.order_confirmation == ""
        assert variables.comments == ""
        assert variables.total_amount == Decimal("0")
        assert variables.process_order is False
        assert variables.is_rto is False

    def test_numeric_ids_and_lowercase_payment_mode(self):
        variables, _ = normalize_order_payload({
            "orderId": 42,
            "customerName": "Jane",
            "contactNo": 9876543210,
            "paymentMode": "cod",
            "totalAmount": 599.98,
            "orderItems": [{"productId": 1, "selectedColors": "Black", "selectedSizes": "M"}],
        })
        assert variables.order_id == "42"
        assert variables.contact_no == "9876543210"
        assert variables.payment_mode == PaymentMode.COD
        assert variables.total_amount == Decimal("599.98")
        assert variables.order_items[0].selected_colors == ["Black"]

    def test_snake_case_keys_accepted(self):
        variables, _ = normalize_order_payload({
            "order_id": "B7",
            "customer_name": "Ravi",
            "contact_no": "9000000001",
            "order_items": [{"product_code": "MTSH09", "selected_colors": ["Red"], "selected_sizes": ["L"]}],
        })
        assert variables.customer_name == "Ravi"
        assert variables.order_items[0].product_code == "MTSH09"

    def test_missing_required_fields_listed(self):
        with pytest.raises(ValidationError) as exc:
            normalize_order_payload({"orderId": "A1", "orderItems": []})
        assert exc.value.missing == ["customerName", "contactNo", "orderItems"]
        assert "customerName" in str(exc.value)

    def test_not_a_dict(self):
        with pytest.raises(ValidationError):
            normalize_order_payload(["nope"])

    def test_bad_date_rejected(self):
        with pytest.raises(ValidationError):
            normalize_order_payload({
                "orderId": "A1", "customerName": "J", "contactNo": "1", "date": "14/07/2025",
                "orderItems": [{"productId": 1, "selectedColors": ["B"], "selectedSizes": ["M"]}],
            })


class TestShopifyPayload:

    def test_detected_and_mapped(self):
        variables, is_shopify = normalize_order_payload(make_shopify_order(order_number=1001))
        assert is_shopify is True
        assert variables.order_id == "1001"
        assert variables.customer_name == "Asha Rao"
        assert variables.contact_no == "+919876543210"
        assert variables.shopify_customer_id == "7001"
        assert variables.state == "Karnataka"
        assert variables.total_amount == Decimal("549.00")
        assert variables.payment_mode == PaymentMode.PAID
        assert variables.comments == "Leave at door"
        assert variables.meta_data["order_number"] == 1001
        line = variables.order_items[0]
        assert line.product_code == "MTSH09"
        assert line.selected_colors == ["Black"]
        assert line.selected_sizes == ["M"]
        assert line.quantity == 1
        assert line.unit_price == Decimal("299.99")

    def test_billing_phone_fallback(self):
        order = make_shopify_order(phone=None)
        order["billing_address"]["phone"] = "+918888888888"
        variables, _ = normalize_order_payload(order)
        assert variables.contact_no == "+918888888888"

    def test_cash_on_delivery(self):
        order = make_shopify_order(payment_gateway_names=["cash_on_delivery", "razorpay"])
        variables, _ = normalize_order_payload(order)
        assert variables.payment_mode == PaymentMode.COD

    def test_unmatched_sku_kept_for_upsert_to_reject(self):
        order = make_shopify_order(line_items=[make_line_item(sku="HOODIE-01")])
        variables, _ = normalize_order_payload(order)
        assert variables.order_items[0].product_code is None

    @pytest.mark.parametrize("title", ["Black", "Black / M / Slim", " / M", "", None])
    def test_malformed_variant_title(self, title):
        order = make_shopify_order(line_items=[make_line_item(variant_title=title)])
        with pytest.raises(ValidationError):
            normalize_order_payload(order)

    def test_missing_phone_is_validation_error(self):
        order = make_shopify_order(phone=None)
        order["billing_address"] = {}
        order["customer"]["phone"] = None
        with pytest.raises(ValidationError) as exc:
            normalize_order_payload(order)
        assert "contactNo" in exc.value.missing

    def test_utc_date_stored_naive(self):
        variables, _ = normalize_order_payload(make_shopify_order(created_at="2025-07-14T10:30:00+05:30"))
        parsed = variables.parsed_date()
        assert parsed.tzinfo is None
        assert (parsed.hour, parsed.minute) == (5, 0)


class TestShipmentStatus:

    def test_tables_are_inverse(self):
        for display, shopify in SHIPMENT_STATUS.items():
            assert SHIPMENT_STATUS_REVERSE[shopify] == display

    def test_first_fulfillment_shipment_status(self):
        order = {"fulfillments": [{"shipment_status": "in_transit"}], "fulfillment_status": "fulfilled"}
        assert shopify_order_status(order) == "InTransit"

    def test_falls_back_to_fulfillment_status_then_new(self):
        assert shopify_order_status({"fulfillments": [{"shipment_status": None}], "fulfillment_status": "fulfilled"}) == "fulfilled"
        assert shopify_order_status({"fulfillments": []}) == "New"

    def test_split_variant_title(self):
        assert split_variant_title("Navy Blue / 2XL") == ("Navy Blue", "2XL")


class TestCustomShopifyOrder:

    def test_customer_row_fields(self):
        order = make_shopify_order(
            order_number=2002,
            fulfillments=[{"shipment_status": "delivered", "tracking_url": "https://track.example/1"}],
        )
        variables = prepare_custom_shopify_order_data(CUSTOMER_ROW, order)
        assert variables.order_id == "2002"
        assert variables.customer_name == "Asha Rao"
        assert variables.shopify_customer_id == "7001"
        assert variables.address == "12 MG Road"
        assert variables.city == "Bengaluru"
        assert variables.country == "IN"
        assert variables.order_status == "Delivered"
        assert variables.tracking_url == "https://track.example/1"

    def test_unmatched_lines_dropped(self):
        order = make_shopify_order(line_items=[
            make_line_item(sku="HOODIE-01"),
            make_line_item(sku="MTRA04-NVY-XL", variant_title="Navy Blue / XL", price="699.99"),
        ])
        variables = prepare_custom_shopify_order_data(CUSTOMER_ROW, order)
        assert [line.product_code for line in variables.order_items] == ["MTRA04"]

    def test_no_matched_lines_returns_none(self):
        order = make_shopify_order(line_items=[make_line_item(sku="HOODIE-01")])
        assert prepare_custom_shopify_order_data(CUSTOMER_ROW, order) is None
