from app.http.requests.schemas import (
    BulkOrderRow,
    CustomerPatch,
    OrderLineInput,
    OrderPatch,
    OrderVariables,
)

__all__ = [
    "BulkOrderRow",
    "CustomerPatch",
    "OrderLineInput",
    "OrderPatch",
    "OrderVariables",
]
