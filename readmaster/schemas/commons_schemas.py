# readmaster/schemas/commons_schemas.py
"""
Shared schemas - response envelopes used by every API
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


# success envelope
class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


# error envelope
class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str
    database: str
    scheduler: str
    ai_configured: bool
