from pydantic import BaseModel
from typing import Optional, Any

class ErrorResponse(BaseModel):
    """Body of every non-2xx response"""
    error: str
    code: Optional[str] = None
    details: Optional[Any] = None
