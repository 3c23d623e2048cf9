"""
Find-or-create customers keyed by Shopify customer id or phone number.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.http.requests import CustomerPatch
from app.models import Customer
from app.services.errors import TransactionRollback, ValidationError

logger = logging.getLogger(__name__)


def find_customer(db: Session, contact_no: Optional[str], shopify_customer_id: Optional[str] = None) -> Optional[Customer]:
    """External id first, then phone. Both are alternate keys of the same row."""
    if shopify_customer_id:
        customer = db.query(Customer).filter(Customer.shopify_customer_id == shopify_customer_id).first()
        if customer:
            return customer
    if contact_no:
        return db.query(Customer).filter(Customer.contact_no == contact_no).first()
    return None


def resolve_customer(
    db: Session,
    *,
    contact_no: str,
    customer_name: str,
    shopify_customer_id: Optional[str] = None,
    email: Optional[str] = None,
    state: Optional[str] = None,
    address: Optional[str] = None,
    city: Optional[str] = None,
    country: Optional[str] = None,
) -> Customer:
    """
    Return the customer for this identity, creating it if needed.
    An existing row takes the latest name and phone, plus external id, state and
    email when supplied (last write wins). A phone already held by another row is
    not moved. Address fields are only set on create.
    Runs inside the caller's transaction; flushes but does not commit.
    """
    customer = find_customer(db, contact_no, shopify_customer_id)
    if customer is None:
        customer = Customer(
            customer_name=customer_name,
            contact_no=contact_no,
            shopify_customer_id=shopify_customer_id,
            email=email,
            state=state,
            address=address,
            city=city,
            country=country,
        )
        db.add(customer)
        db.flush()
        logger.info("Created customer %s (%s)", customer.id, contact_no)
        return customer

    customer.customer_name = customer_name
    if contact_no and contact_no != customer.contact_no:
        owner = db.query(Customer).filter(Customer.contact_no == contact_no).first()
        if owner is None:
            customer.contact_no = contact_no
        else:
            # phone is unique; it stays with the row that already holds it
            logger.warning(
                "Phone %s belongs to customer %s; keeping %s on customer %s",
                contact_no, owner.id, customer.contact_no, customer.id,
            )
    if shopify_customer_id:
        customer.shopify_customer_id = shopify_customer_id
    if state is not None:
        customer.state = state
    if email is not None:
        customer.email = email
    db.flush()
    logger.debug("Updated customer %s from latest order", customer.id)
    return customer


def update_customer(db: Session, customer_id: int, patch: CustomerPatch) -> Optional[Customer]:
    """Apply only the fields present in the patch. Returns None if the customer does not exist."""
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if customer is None:
        return None
    changes = patch.model_dump(exclude_unset=True)
    for field in ("customer_name", "contact_no"):
        if field in changes and not changes[field]:
            raise ValidationError(f"{field} cannot be empty", missing=[field])
    for field, value in changes.items():
        setattr(customer, field, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise TransactionRollback(f"Database operation failed: {e}", cause=e) from e
    db.refresh(customer)
    logger.info("Updated customer %s fields: %s", customer.id, ", ".join(sorted(changes)) or "(none)")
    return customer


def serialize_customer(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "customerName": customer.customer_name,
        "contactNo": customer.contact_no,
        "shopifyCustomerId": customer.shopify_customer_id,
        "email": customer.email,
        "address": customer.address,
        "city": customer.city,
        "country": customer.country,
        "state": customer.state,
        "createdAt": customer.created_at.isoformat() if customer.created_at else None,
        "updatedAt": customer.updated_at.isoformat() if customer.updated_at else None,
    }
