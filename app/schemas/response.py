from pydantic import BaseModel, Field
from typing import Any, Literal, Optional
import uuid

def _rid():
    return uuid.uuid4().hex

class SuccessResponse(BaseModel):
    """Simple success response wrapper with just data, success, and request_id"""
    success: Optional[bool] = Field(default=True)
    request_id: str = Field(default_factory=_rid)
    data: Optional[Any] = None

class ItemCreateResult(BaseModel):
    """Item creation reports a typed error kind instead of a message."""
    ok: bool
    item_id: Optional[str] = None
    error: Optional[Literal["DUPLICATE_NAME", "VALIDATION_ERROR", "SERVER_ERROR"]] = None
