import uuid
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from app.models.quote import QuoteStatus


class QuoteRequest(BaseModel):
    """Dates are ISO strings (YYYY-MM-DD); they are parsed by the service."""
    name: str
    start_date: str
    end_date: str


class QuoteItemCreateRequest(BaseModel):
    item_id: uuid.UUID
    quantity: Union[int, str]
    unit_price: Optional[Union[Decimal, str]] = Field(None, description="Overrides the item's current price.")


class QuoteItemUpdateRequest(BaseModel):
    quantity: Union[int, str]


class QuoteItemResponse(BaseModel):
    id: str
    item_id: str
    item_name: Optional[str] = None
    item_is_serialized: Optional[bool] = None
    quantity: int
    unit_price_snapshot: str


class QuoteResponse(BaseModel):
    id: str
    name: str
    start_date: str
    end_date: str
    status: QuoteStatus
    items: List[QuoteItemResponse] = []


class LedgerFailureResponse(BaseModel):
    item_id: str
    item_name: str
    requested: int
    applied: int
    message: str


class ConfirmationResponse(BaseModel):
    quote_id: str
    status: QuoteStatus
    event_id: Optional[str] = None
    ledger_failures: List[LedgerFailureResponse] = []
