"""Generic API response schemas"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


class APIResponse(BaseModel):
    """Generic API success response"""
    success: bool = True
    message: str
    data: Optional[Any] = None
    timestamp: str = Field(default_factory=_now_iso)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    database: Dict[str, Any]
