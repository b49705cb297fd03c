"""
Custom exceptions for the KYC Review service.
"""
from typing import Optional

class BaseKycReviewError(Exception):
    """Base class for exceptions in this module."""
    pass

class ValidationError(BaseKycReviewError):
    """Raised when caller input violates a review policy (lengths, file rules, targets)."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)

class NotFoundError(BaseKycReviewError):
    """Raised when a referenced entity does not exist."""
    pass

class SubmissionNotFoundError(NotFoundError):
    """Raised when a submission is not in the store."""
    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission with ID '{submission_id}' not found.")

class ConflictError(BaseKycReviewError):
    """Raised when an operation conflicts with the current state of a submission."""
    pass

class InvalidTransitionError(ConflictError):
    """Raised when a workflow event is not legal from the submission's current status."""
    def __init__(self, submission_id: str, current_status: str, attempted_event: str):
        self.submission_id = submission_id
        self.current_status = current_status
        self.attempted_event = attempted_event
        super().__init__(f"Cannot {attempted_event} submission '{submission_id}' in status '{current_status}'.")

class RequestNotPendingError(ConflictError):
    """Raised when an amendment request is unknown or was already resolved."""
    def __init__(self, submission_id: str, request_id: str):
        self.submission_id = submission_id
        self.request_id = request_id
        super().__init__(f"Amendment request '{request_id}' is not pending on submission '{submission_id}'.")

class DuplicateSubmissionError(ConflictError):
    """Raised when adding a submission whose ID is already taken."""
    def __init__(self, submission_id: str):
        self.submission_id = submission_id
        super().__init__(f"Submission with ID '{submission_id}' already exists.")

class IntegrityError(ConflictError):
    """Raised when a store update would rewrite immutable fields or history."""
    pass

class StorageError(BaseKycReviewError):
    """Raised when the document storage collaborator rejects an upload."""
    pass

class StorageUnavailableError(StorageError):
    """Raised when the document storage collaborator cannot be reached."""
    pass

class ComplianceCheckError(BaseKycReviewError):
    """Raised when the compliance pre-screen collaborator fails. Recoverable; the caller may retry."""
    pass

class PermissionDeniedError(BaseKycReviewError):
    """Raised when a role lacks the capability an operation needs."""
    def __init__(self, role: str, capability: str):
        self.role = role
        self.capability = capability
        super().__init__(f"Role '{role}' is not allowed to {capability}.")

class ConfigurationError(BaseKycReviewError):
    """Raised when a configuration issue is detected."""
    pass

class KafkaProducerError(BaseKycReviewError):
    """Raised when there's an issue with Kafka message production."""
    pass
