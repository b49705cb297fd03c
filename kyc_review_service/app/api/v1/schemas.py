# Request bodies shared by the v1 endpoints
import base64
import binascii
from typing import List, Optional

from pydantic import BaseModel

from kyc_review_service.app.models import PreviewHandle, StagedFile
from kyc_review_service.app.service.exceptions import ValidationError
from kyc_review_service.app.service.previews import PreviewSession


class FileUpload(BaseModel):
    file_name: str
    content_type: str
    content: str # base64
    document_type: str
    target_document_id: Optional[str] = None
    request_id: Optional[str] = None


def decode_upload(upload: FileUpload, field: str) -> StagedFile:
    try:
        data = base64.b64decode(upload.content, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(f"{field}.content is not valid base64.", field=f"{field}.content")
    return StagedFile(file_name=upload.file_name, content_type=upload.content_type, data=data)


def stage_uploads(session: PreviewSession, uploads: List[FileUpload]) -> List[PreviewHandle]:
    """Decodes and stages every upload, one session slot each, in request order."""
    handles = []
    for index, upload in enumerate(uploads):
        field = f"files[{index}]"
        handles.append(session.stage(field, decode_upload(upload, field)))
    return handles
