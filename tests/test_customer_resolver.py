"""
Customer identity resolution tests
"""
import pytest

from app.http.requests import CustomerPatch
from app.models import Customer
from app.services.customer_resolver import resolve_customer, serialize_customer, update_customer
from app.services.errors import ValidationError


class TestResolveCustomer:

    def test_creates_on_first_sight(self, db_session):
        customer = resolve_customer(
            db_session, contact_no="919876543210", customer_name="Jane",
            email="jane@example.com", city="Pune", country="IN", state="MH",
        )
        db_session.commit()
        assert customer.id is not None
        assert db_session.query(Customer).count() == 1
        assert customer.city == "Pune"

    def test_same_phone_same_customer_last_write_wins(self, db_session):
        first = resolve_customer(db_session, contact_no="9876543210", customer_name="Jane")
        second = resolve_customer(db_session, contact_no="9876543210", customer_name="Jane D.")
        db_session.commit()
        assert first.id == second.id
        assert db_session.query(Customer).count() == 1
        assert second.customer_name == "Jane D."

    def test_external_id_checked_before_phone(self, db_session):
        original = resolve_customer(
            db_session, contact_no="9000000001", customer_name="Ravi", shopify_customer_id="7001",
        )
        # New phone, same Shopify id -> same row, phone updated
        again = resolve_customer(
            db_session, contact_no="9000000002", customer_name="Ravi K", shopify_customer_id="7001",
        )
        db_session.commit()
        assert again.id == original.id
        assert again.contact_no == "9000000002"

    def test_phone_match_attaches_external_id(self, db_session):
        manual = resolve_customer(db_session, contact_no="9111111111", customer_name="Meera")
        synced = resolve_customer(
            db_session, contact_no="9111111111", customer_name="Meera", shopify_customer_id="8002",
        )
        db_session.commit()
        assert synced.id == manual.id
        assert synced.shopify_customer_id == "8002"

    def test_omitted_fields_are_kept(self, db_session):
        resolve_customer(db_session, contact_no="9222222222", customer_name="Arun", email="a@x.io", state="KA")
        customer = resolve_customer(db_session, contact_no="9222222222", customer_name="Arun")
        db_session.commit()
        assert customer.email == "a@x.io"
        assert customer.state == "KA"

    def test_phone_owned_by_other_customer_is_not_moved(self, db_session):
        walk_in = resolve_customer(db_session, contact_no="9333333333", customer_name="Kiran")
        synced = resolve_customer(
            db_session, contact_no="9444444444", customer_name="Kiran S", shopify_customer_id="7001",
        )
        again = resolve_customer(
            db_session, contact_no="9333333333", customer_name="Kiran S", shopify_customer_id="7001",
        )
        db_session.commit()
        assert again.id == synced.id
        assert again.contact_no == "9444444444"
        assert db_session.get(Customer, walk_in.id).contact_no == "9333333333"
        assert db_session.query(Customer).count() == 2


class TestUpdateCustomer:

    def test_applies_only_supplied_fields(self, db_session):
        customer = resolve_customer(db_session, contact_no="9333333333", customer_name="Nila", city="Chennai")
        db_session.commit()
        updated = update_customer(db_session, customer.id, CustomerPatch(email="nila@example.com"))
        assert updated.email == "nila@example.com"
        assert updated.city == "Chennai"
        assert serialize_customer(updated)["contactNo"] == "9333333333"

    def test_camel_case_keys(self, db_session):
        customer = resolve_customer(db_session, contact_no="9444444444", customer_name="Old")
        db_session.commit()
        patch = CustomerPatch.model_validate({"customerName": "New", "contactNo": 9444444445})
        updated = update_customer(db_session, customer.id, patch)
        assert updated.customer_name == "New"
        assert updated.contact_no == "9444444445"

    def test_missing_customer(self, db_session):
        assert update_customer(db_session, 999, CustomerPatch(city="X")) is None

    def test_empty_name_rejected(self, db_session):
        customer = resolve_customer(db_session, contact_no="9555555555", customer_name="Kiran")
        db_session.commit()
        with pytest.raises(ValidationError):
            update_customer(db_session, customer.id, CustomerPatch(customer_name=""))
