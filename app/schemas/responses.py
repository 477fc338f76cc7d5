"""Standardized API Response Schemas"""

from typing import Generic, TypeVar, Optional, Any
from pydantic import BaseModel


T = TypeVar('T')


class SuccessResponse(BaseModel, Generic[T]):
    """
    Standard success response envelope.

    Example:
        {
            "success": true,
            "data": {...},
            "message": "Operation successful"
        }
    """
    success: bool = True
    data: Optional[T] = None
    message: str = "Operation successful"


class ErrorDetail(BaseModel):
    """Error details structure: kind plus the offending field/value"""
    code: str
    message: str
    field: Optional[str] = None
    value: Optional[Any] = None


class ErrorResponse(BaseModel):
    """
    Standard error response envelope.

    Example:
        {
            "success": false,
            "error": {
                "code": "OUT_OF_RANGE",
                "message": "Score must be between 0 and 20",
                "field": "score",
                "value": 25
            }
        }
    """
    success: bool = False
    error: ErrorDetail
