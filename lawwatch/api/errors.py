"""
Result failures -> HTTP errors.
"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status

from lawwatch.api.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata
from lawwatch.core.exceptions import ErrorCode
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Err, Result

logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.RATE_LIMIT_ERROR: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.UPSTREAM_FETCH_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.PARSING_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.STORE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, 'request_id', None)


def unwrap_or_raise(result: Result[Any], request: Request) -> Any:
    """Value of an ``Ok``; an ``Err`` becomes an ``HTTPException`` with an ``ErrorResponse`` body."""
    if not isinstance(result, Err):
        return result.value

    status_code = ERROR_STATUS.get(result.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.warning(
        f"Request failed: {result.error}",
        extra={"error_code": result.code.value, "status_code": status_code}
    )
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(
            error=ErrorDetail(code=result.code.value, message=result.error),
            metadata=ResponseMetadata(request_id=get_request_id(request)),
        ).model_dump(mode="json")
    )
