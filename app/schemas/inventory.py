from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, Field


class ItemCreateRequest(BaseModel):
    name: str = Field(..., description="Unique (per tenant) item name.")
    is_serialized: bool = Field(False, description="Track individual units instead of bulk stock.")
    price: Union[Decimal, str] = Field(0, description="Current rental price per unit.")


class ItemUpdateRequest(BaseModel):
    name: str
    price: Union[Decimal, str]


class UnitsCreateRequest(BaseModel):
    count: Union[int, str] = Field(..., description="How many units to add.")
    serial_prefix: Optional[str] = Field(None, description="Serials are generated as '<prefix>-<n>'.")


class StockUpdateRequest(BaseModel):
    total_quantity: Union[int, str] = Field(..., description="Total units owned.")
    out_of_service_quantity: Union[int, str] = Field(0, description="Units not rentable right now.")


class UnitStatusUpdate(BaseModel):
    status: str = Field(..., description="available | out | maintenance")


class ItemResponse(BaseModel):
    id: str
    name: str
    is_serialized: bool
    price: str
    active: bool


class AvailabilityResponse(BaseModel):
    """Schema for an item's availability breakdown."""
    item_id: str
    is_serialized: bool
    total: int
    available: int
    reserved: int
    in_transit: int
    out_of_service: int
    reserved_in_overlapping_events: Optional[int] = None
    effective_available: Optional[int] = None


class MaintenanceLogRequest(BaseModel):
    note: str = Field(..., description="What was done or found.")
