# Submission Intake: a new KYC case from a branch
import logging
from typing import List, Optional, Tuple

from opentelemetry import trace
from pydantic import BaseModel

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import (
    DocumentType,
    PreviewHandle,
    StatusChange,
    Submission,
    SubmissionStatus,
    WorkflowEvent,
)
from kyc_review_service.app.service import revisions
from kyc_review_service.app.service.exceptions import ValidationError
from kyc_review_service.app.service.interfaces.document_storage import AbstractDocumentStorage
from kyc_review_service.app.service.previews import PreviewResourceManager
from kyc_review_service.app.service.revisions import DocumentUpload
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.validation import (
    parse_document_type,
    require_min_length,
    validate_staged_file,
)

logger = logging.getLogger(__name__)


class IntakeFile(BaseModel):
    handle: PreviewHandle
    document_type: str


class SubmissionIntake:
    def __init__(
        self,
        store: SubmissionStore,
        storage: AbstractDocumentStorage,
        previews: PreviewResourceManager,
        min_customer_name_length: Optional[int] = None,
    ):
        self.store = store
        self.storage = storage
        self.previews = previews
        self.min_customer_name_length = (
            min_customer_name_length
            if min_customer_name_length is not None
            else settings.MIN_CUSTOMER_NAME_LENGTH
        )

    async def create_submission(
        self,
        customer_name: str,
        branch: str,
        files: List[IntakeFile],
        officer: Optional[str] = None,
        details: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Submission:
        """
        Uploads the files and adds a Pending submission to the store. A file with
        the same name and size as an earlier one is dropped. Preview handles
        are released whether or not the submission is created.
        """
        current_span = trace.get_current_span()
        current_span.add_event("CreateSubmissionStarted", {"files.count": len(files)})
        try:
            name = require_min_length(customer_name, self.min_customer_name_length, "customer_name")
            branch_name = require_min_length(branch, 1, "branch")
            unique_files = self._deduplicate(files)
            if not unique_files:
                raise ValidationError("At least one document is required.", field="files")

            typed: List[Tuple[IntakeFile, DocumentType]] = []
            for index, intake_file in enumerate(unique_files):
                document_type = parse_document_type(intake_file.document_type, field=f"files[{index}].document_type")
                validate_staged_file(intake_file.handle.file)
                typed.append((intake_file, document_type))

            submission = Submission(customer_name=name, branch=branch_name, officer=officer, details=details)
            uploads = [await self._upload(submission.id, f, t) for f, t in typed]
            documents = revisions.materialize_batch((), uploads)
            submission = submission.evolve(
                documents=tuple(documents),
                status_history=(
                    StatusChange(to_status=SubmissionStatus.PENDING, event=WorkflowEvent.SUBMIT, actor=actor),
                ),
            )
            self.store.add(submission)
            current_span.add_event("SubmissionCreated", {"submission.id": submission.id})
            logger.info(f"Submission {submission.id} created for '{name}' at branch '{branch_name}' with {len(documents)} document(s).")
            return submission
        finally:
            self.previews.release_all(f.handle for f in files)

    @staticmethod
    def _deduplicate(files: List[IntakeFile]) -> List[IntakeFile]:
        seen = set()
        unique: List[IntakeFile] = []
        for intake_file in files:
            key = (intake_file.handle.file.file_name, intake_file.handle.file.size)
            if key in seen:
                logger.debug(f"Skipping duplicate file '{key[0]}' ({key[1]} bytes).")
                continue
            seen.add(key)
            unique.append(intake_file)
        return unique

    async def _upload(self, submission_id: str, intake_file: IntakeFile, document_type: DocumentType) -> DocumentUpload:
        staged = intake_file.handle.file
        url = await self.storage.store(
            staged.data,
            {
                "submission_id": submission_id,
                "file_name": staged.file_name,
                "content_type": staged.content_type,
                "document_type": document_type.value,
            },
        )
        return DocumentUpload(
            document_type=document_type,
            file_name=staged.file_name,
            size=staged.size,
            format=staged.content_type,
            url=url,
        )
