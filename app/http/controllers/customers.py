"""
Customer routes
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.http.requests import CustomerPatch
from app.services.customer_resolver import serialize_customer, update_customer

router = APIRouter()


@router.put("/{customer_id}")
async def update_customer_detail(customer_id: int, patch: CustomerPatch, db: Session = Depends(get_db)):
    """Update customer contact fields"""
    if not patch.model_fields_set:
        raise HTTPException(status_code=400, detail="No updatable fields supplied")
    customer = update_customer(db, customer_id, patch)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return {"success": True, "customer": serialize_customer(customer)}
