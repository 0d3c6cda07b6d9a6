"""
Response envelope shared by every LawWatch endpoint.

Successful calls return ``BaseResponse[T]``; failed calls raise an
``HTTPException`` whose detail is an ``ErrorResponse`` (see ``lawwatch.api.errors``).
"""

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

DataT = TypeVar('DataT')

# ======================== BASE MODELS ========================

class BaseSchema(BaseModel):
    """Common DTO configuration: enums serialized by value, unknown fields rejected."""
    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        extra='forbid',
    )

# ======================== ENVELOPE ========================

class ResponseMetadata(BaseSchema):
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Server time the response was built (UTC)"
    )
    request_id: Optional[str] = Field(None, description="Echo of X-Request-ID")
    duration_ms: Optional[float] = Field(None, ge=0, description="Handler time in milliseconds")


class BaseResponse(BaseSchema, Generic[DataT]):
    success: bool = Field(..., description="False only inside error bodies")
    data: Optional[DataT] = Field(None, description="Endpoint payload")
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ErrorDetail(BaseSchema):
    code: str = Field(..., description="ErrorCode value of the failed result")
    message: str = Field(..., description="Failure message of the result")


class ErrorResponse(BaseSchema):
    success: bool = False
    error: ErrorDetail
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


__all__ = [
    'BaseSchema',
    'ResponseMetadata',
    'BaseResponse',
    'ErrorDetail',
    'ErrorResponse',
]
