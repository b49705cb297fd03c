# Amendment Manager: the request/response protocol between reviewers and branches
import logging
import time
from collections import defaultdict
from typing import Dict, List, NamedTuple, Optional, Tuple

from opentelemetry.trace import SpanKind, Status, StatusCode
from pydantic import BaseModel, Field

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import (
    Amendment,
    AmendmentRequest,
    AmendmentRequestDraft,
    AmendmentRequestType,
    DocumentType,
    PreviewHandle,
    Submission,
    SubmittedDocument,
    WorkflowEvent,
)
from kyc_review_service.app.models.enums import RESPONSE_TYPE_COMMENT_ONLY, RESPONSE_TYPE_FILE_SUBMITTED
from kyc_review_service.app.observability import (
    amendment_resolution_latency_histogram,
    amendments_requested_counter,
    amendments_resolved_counter,
    tracer,
)
from kyc_review_service.app.service import revisions, workflow
from kyc_review_service.app.service.exceptions import RequestNotPendingError, ValidationError
from kyc_review_service.app.service.interfaces.document_storage import AbstractDocumentStorage
from kyc_review_service.app.service.previews import PreviewResourceManager
from kyc_review_service.app.service.revisions import DocumentUpload
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.validation import (
    parse_document_type,
    require_min_length,
    validate_staged_file,
)
from kyc_review_service.app.service.workflow import WorkflowEngine

logger = logging.getLogger(__name__)


class ResponseFile(BaseModel):
    """One staged file answering one amendment request."""
    handle: PreviewHandle
    document_type: str
    target_document_id: Optional[str] = None
    request_id: Optional[str] = None # defaults to the request being resolved


class AmendmentResponse(BaseModel):
    response_comment: str
    files: List[ResponseFile] = Field(default_factory=list)
    response_type: Optional[str] = None


class _ResolutionPlan(NamedTuple):
    requests: List[AmendmentRequest]
    files: List[Tuple[ResponseFile, DocumentType]]

    @property
    def request_ids(self) -> List[str]:
        return [r.id for r in self.requests]


class AmendmentManager:
    def __init__(
        self,
        store: SubmissionStore,
        workflow_engine: WorkflowEngine,
        storage: AbstractDocumentStorage,
        previews: PreviewResourceManager,
        min_response_comment_length: Optional[int] = None,
    ):
        self.store = store
        self.workflow_engine = workflow_engine
        self.storage = storage
        self.previews = previews
        self.min_response_comment_length = (
            min_response_comment_length
            if min_response_comment_length is not None
            else settings.MIN_RESPONSE_COMMENT_LENGTH
        )

    def request(self, submission_id: str, draft: AmendmentRequestDraft, actor: Optional[str] = None) -> AmendmentRequest:
        """
        Opens an amendment request on a submission and moves it to Action Required.

        REPLACE_EXISTING requests must name an existing document of the target
        type; the other types must not name a document. Status checks and the
        document lookup run against the value being committed.
        """
        comment = require_min_length(draft.comment, self.workflow_engine.min_reason_length, "comment")
        if draft.type != AmendmentRequestType.REQUEST_INFO and draft.target_document_type is None:
            raise ValidationError(f"target_document_type is required for {draft.type.value} requests.", field="target_document_type")
        if draft.type == AmendmentRequestType.REPLACE_EXISTING and not draft.target_document_id:
            raise ValidationError("target_document_id is required for REPLACE_EXISTING requests.", field="target_document_id")
        if draft.type != AmendmentRequestType.REPLACE_EXISTING and draft.target_document_id:
            raise ValidationError(f"target_document_id is not allowed for {draft.type.value} requests.", field="target_document_id")

        request = AmendmentRequest(
            type=draft.type,
            target_document_type=draft.target_document_type,
            target_document_id=draft.target_document_id,
            comment=comment,
            requested_by=actor,
        )

        def precheck(current: Submission) -> None:
            workflow.next_status(current, WorkflowEvent.REQUEST_AMENDMENT)
            if request.type != AmendmentRequestType.REPLACE_EXISTING:
                return
            target = current.find_document(request.target_document_id)
            if target is None:
                raise ValidationError(
                    f"Document '{request.target_document_id}' does not exist on submission '{current.id}'.",
                    field="target_document_id",
                )
            if target.document_type != request.target_document_type:
                raise ValidationError(
                    f"Document '{target.id}' is a {target.document_type.value}, not a {request.target_document_type.value}.",
                    field="target_document_id",
                )

        with tracer.start_as_current_span("amendments.request", kind=SpanKind.INTERNAL) as span:
            span.set_attribute("submission.id", submission_id)
            span.set_attribute("request.type", request.type.value)
            self.workflow_engine.request_amendment(submission_id, request, actor=actor, precheck=precheck)

        amendments_requested_counter.add(1, {"request.type": request.type.value})
        logger.info(f"Amendment request {request.id} ({request.type.value}) opened on submission {submission_id}.")
        return request

    async def resolve(
        self,
        submission_id: str,
        request_id: str,
        response: AmendmentResponse,
        actor: Optional[str] = None,
    ) -> Amendment:
        """
        Resolves `request_id`, plus every other pending request a file names,
        with one branch response.

        Validation happens against the current snapshot, the files are then
        uploaded, and the commit re-validates against whatever the store holds
        at that point: if a concurrent call resolved one of the requests first,
        this call fails with RequestNotPendingError and changes nothing. Either
        every file becomes a document and every named request is resolved, or
        none is. The preview handles of the response are released however the
        call ends, cancellation included.
        """
        started = time.monotonic()
        outcome = "error"
        handles = [f.handle for f in response.files]
        try:
            with tracer.start_as_current_span("amendments.resolve", kind=SpanKind.INTERNAL) as span:
                span.set_attribute("submission.id", submission_id)
                span.set_attribute("request.id", request_id)
                span.set_attribute("files.count", len(response.files))
                try:
                    comment = require_min_length(
                        response.response_comment, self.min_response_comment_length, "response_comment"
                    )
                    snapshot = self.store.get(submission_id)
                    plan = self._plan(snapshot, request_id, response)

                    uploads: List[DocumentUpload] = []
                    for response_file, document_type in plan.files:
                        uploads.append(await self._upload(submission_id, response_file, document_type))
                    span.add_event("FilesUploaded", {"uploads.count": len(uploads)})

                    response_type = response.response_type or (
                        RESPONSE_TYPE_FILE_SUBMITTED if response.files else RESPONSE_TYPE_COMMENT_ONLY
                    )

                    def mutator(current: Submission) -> Submission:
                        current_plan = self._plan(current, request_id, response)
                        new_documents = revisions.materialize_batch(current.documents, uploads)
                        amendment = self._history_entry(current, current_plan.requests, comment, response_type, new_documents)
                        return workflow.close_amendments(
                            current, current_plan.request_ids, amendment, new_documents, actor=actor
                        )

                    updated = self.store.apply(submission_id, mutator)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, description=f"Resolve Error: {type(e).__name__}"))
                    raise

                amendment = updated.amendment_history[-1]
                outcome = "resolved"
                amendments_resolved_counter.add(len(amendment.request_ids), {"response.type": amendment.response_type})
                span.set_status(Status(StatusCode.OK))
                logger.info(
                    f"Resolved {len(amendment.request_ids)} amendment request(s) on submission {submission_id} "
                    f"with {len(amendment.documents)} document(s); status is now '{updated.status.value}'."
                )
                return amendment
        finally:
            self.previews.release_all(handles)
            amendment_resolution_latency_histogram.record(time.monotonic() - started, {"outcome": outcome})

    def _plan(self, submission: Submission, request_id: str, response: AmendmentResponse) -> _ResolutionPlan:
        """Checks the response against `submission` and pairs every file with the request it answers."""
        requested_ids: List[str] = [request_id]
        for response_file in response.files:
            if response_file.request_id and response_file.request_id not in requested_ids:
                requested_ids.append(response_file.request_id)

        requests: Dict[str, AmendmentRequest] = {}
        for rid in requested_ids:
            pending = submission.find_pending_request(rid)
            if pending is None:
                raise RequestNotPendingError(submission.id, rid)
            requests[rid] = pending

        files: List[Tuple[ResponseFile, DocumentType]] = []
        files_per_request: Dict[str, int] = defaultdict(int)
        for index, response_file in enumerate(response.files):
            request = requests[response_file.request_id or request_id]
            document_type = parse_document_type(response_file.document_type, field=f"files[{index}].document_type")
            if request.target_document_type is not None and document_type != request.target_document_type:
                raise ValidationError(
                    f"File '{response_file.handle.file.file_name}' is a {document_type.value} but request "
                    f"'{request.id}' asks for a {request.target_document_type.value}.",
                    field=f"files[{index}].document_type",
                )
            if response_file.target_document_id:
                if request.type != AmendmentRequestType.REPLACE_EXISTING:
                    raise ValidationError(
                        f"Request '{request.id}' does not replace a document; target_document_id is not allowed.",
                        field=f"files[{index}].target_document_id",
                    )
                if response_file.target_document_id != request.target_document_id:
                    raise ValidationError(
                        f"Request '{request.id}' replaces document '{request.target_document_id}', "
                        f"not '{response_file.target_document_id}'.",
                        field=f"files[{index}].target_document_id",
                    )
            validate_staged_file(response_file.handle.file)
            files.append((response_file, document_type))
            files_per_request[request.id] += 1

        for request in requests.values():
            if request.requires_files and files_per_request[request.id] == 0:
                raise ValidationError(
                    f"Request '{request.id}' ({request.type.value}) needs at least one file.",
                    field="files",
                )
        return _ResolutionPlan(requests=list(requests.values()), files=files)

    async def _upload(self, submission_id: str, response_file: ResponseFile, document_type: DocumentType) -> DocumentUpload:
        staged = response_file.handle.file
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

    @staticmethod
    def _history_entry(
        submission: Submission,
        requests: List[AmendmentRequest],
        comment: str,
        response_type: str,
        documents: List[SubmittedDocument],
    ) -> Amendment:
        return Amendment(
            requested_at=min(r.requested_at for r in requests),
            requested_by=requests[0].requested_by or submission.officer,
            reason="\n".join(r.comment for r in requests),
            response_comment=comment,
            response_type=response_type,
            documents=tuple(documents),
            request_ids=tuple(r.id for r in requests),
        )
