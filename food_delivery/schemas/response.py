from pydantic import BaseModel, Field
from typing import Any, Optional
import uuid

def _rid():
    return uuid.uuid4().hex

class SuccessResponse(BaseModel):
    """Envelope for every successful response: success, message, request_id and data"""
    success: Optional[bool] = Field(default=True)
    message: Optional[str] = None
    request_id: str = Field(default_factory=_rid)
    data: Optional[Any] = None
