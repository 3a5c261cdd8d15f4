"""Generic API response schemas"""

from pydantic import BaseModel
from typing import Optional, Any, Dict


class MessageResponse(BaseModel):
    """Plain success response"""
    message: str


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint"""
    message: str
    errors: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    database: Dict[str, Any]
