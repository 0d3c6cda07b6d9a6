"""
API Schemas (DTOs) Package

Request/response models kept separate from the domain dataclasses.
"""

from lawwatch.api.schemas.base import (
    BaseSchema,
    BaseResponse,
    ResponseMetadata,
    ErrorDetail,
    ErrorResponse,
)

__all__ = [
    'BaseSchema',
    'BaseResponse',
    'ResponseMetadata',
    'ErrorDetail',
    'ErrorResponse',
]
