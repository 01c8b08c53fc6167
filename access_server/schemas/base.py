# access_server/schemas/base.py
"""
Base schemas for API responses
"""

from pydantic import BaseModel, Field
from typing import TypeVar, Generic, Optional
from datetime import datetime

T = TypeVar("T")


class BaseResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper
    All API responses should follow this format
    """
    success: bool = True
    message: str = "Operation successful"
    data: Optional[T] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """
    Standard error response
    Used for 4xx and 5xx responses
    """
    success: bool = False
    error: str
    error_code: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "device 'laptop' does not exist",
                "error_code": "NOT_FOUND",
                "details": {"name": "laptop"},
                "timestamp": "2025-12-26T10:00:00Z"
            }
        }


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = "healthy"
    service: str = "access-server"
    version: str = "1.0.0"
    uptime_seconds: Optional[float] = None
    database: str = "connected"
    wireguard: str = "up"
    timestamp: datetime = Field(default_factory=datetime.utcnow)
