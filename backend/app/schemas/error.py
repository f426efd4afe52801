from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime

class ErrorResponse(BaseModel):
    timestamp: datetime
    status: int
    error: str
    message: str
    path: str
    errors: Optional[Dict[str, Any]] = None
