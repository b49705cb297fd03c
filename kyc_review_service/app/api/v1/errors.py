# Mapping of service exceptions onto HTTP responses
import logging

from fastapi import HTTPException

from kyc_review_service.app.service.exceptions import (
    BaseKycReviewError,
    ComplianceCheckError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    StorageUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Order matters: subclasses before their bases.
_STATUS_CODES = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (StorageUnavailableError, 503),
    (StorageError, 502),
    (ComplianceCheckError, 502),
    (PermissionDeniedError, 403),
]

def to_http_exception(error: BaseKycReviewError) -> HTTPException:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            if status_code >= 500:
                logger.error(f"{type(error).__name__}: {error}")
            else:
                logger.warning(f"{type(error).__name__}: {error}")
            return HTTPException(status_code=status_code, detail=str(error))
    logger.error(f"Unmapped service error {type(error).__name__}: {error}", exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error.")
