import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.models.event import EventStatus


class EventRequest(BaseModel):
    name: str
    start_date: str
    end_date: str
    description: Optional[str] = None
    location: Optional[str] = None
    quote_id: Optional[uuid.UUID] = None
    status: Optional[EventStatus] = None


class EventResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    start_date: str
    end_date: str
    location: Optional[str] = None
    status: EventStatus
    quote_id: Optional[str] = None
    inventory: List[Dict[str, Any]] = []


class EventUpdateRequest(BaseModel):
    name: str
    start_date: str
    end_date: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: Optional[str] = None
