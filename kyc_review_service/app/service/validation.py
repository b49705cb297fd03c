# Input policy checks shared by intake, amendments and preview staging
from typing import Any, Optional

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import DocumentType, StagedFile
from kyc_review_service.app.service.exceptions import ValidationError


def require_min_length(value: Optional[str], minimum: int, field: str) -> str:
    """Returns the trimmed value, or raises ValidationError if it is shorter than `minimum`."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required.", field=field)
    if len(text) < minimum:
        raise ValidationError(f"{field} must be at least {minimum} characters long.", field=field)
    return text


def parse_document_type(value: Any, field: str = "document_type") -> DocumentType:
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise ValidationError(f"Unknown document type '{value}'. Expected one of: {allowed}.", field=field)


def validate_staged_file(file: StagedFile) -> StagedFile:
    if not file.file_name.strip():
        raise ValidationError("File name is required.", field="file_name")
    if file.size == 0:
        raise ValidationError(f"File '{file.file_name}' is empty.", field="file")
    if file.size > settings.MAX_UPLOAD_SIZE_BYTES:
        limit_mb = settings.MAX_UPLOAD_SIZE_BYTES / (1024 * 1024)
        raise ValidationError(f"File '{file.file_name}' exceeds the {limit_mb:g}MB upload limit.", field="file")
    if file.content_type not in settings.ACCEPTED_UPLOAD_FORMATS:
        raise ValidationError(
            f"File '{file.file_name}' has unsupported format '{file.content_type}'. "
            f"Accepted formats: {', '.join(settings.ACCEPTED_UPLOAD_FORMATS)}.",
            field="file",
        )
    return file
