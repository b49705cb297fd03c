# API Router for Submissions and review decisions
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from kyc_review_service.app.api.v1.errors import to_http_exception
from kyc_review_service.app.api.v1.schemas import FileUpload, stage_uploads
from kyc_review_service.app.dependencies.engine import (
    get_current_actor,
    get_current_role,
    get_preview_manager,
    get_submission_intake,
    get_submission_store,
    get_workflow_engine,
)
from kyc_review_service.app.models import Role, Submission, SubmissionStatus, WorkflowEvent
from kyc_review_service.app.service.exceptions import BaseKycReviewError
from kyc_review_service.app.service.intake import IntakeFile, SubmissionIntake
from kyc_review_service.app.service.previews import PreviewResourceManager, PreviewSession
from kyc_review_service.app.service.roles import Capability, require_capability
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.app.service.timeline import WorkflowStep, build_workflow_timeline
from kyc_review_service.app.service.workflow import WorkflowEngine

logger = logging.getLogger(__name__)
router = APIRouter()


class CreateSubmissionRequest(BaseModel):
    customer_name: str
    branch: str
    officer: Optional[str] = None
    details: Optional[str] = None
    files: List[FileUpload] = Field(default_factory=list)


class DecisionRequest(BaseModel):
    note: Optional[str] = None


class AssignOfficerRequest(BaseModel):
    officer: str


@router.post("/submissions", response_model=Submission, status_code=201, tags=["Submissions"])
async def create_submission_api(
    request_data: CreateSubmissionRequest = Body(...),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    intake: SubmissionIntake = Depends(get_submission_intake),
    previews: PreviewResourceManager = Depends(get_preview_manager),
):
    try:
        require_capability(role, Capability.RESPOND)
        async with PreviewSession(previews) as session:
            handles = stage_uploads(session, request_data.files)
            files = [
                IntakeFile(handle=handle, document_type=upload.document_type)
                for handle, upload in zip(handles, request_data.files)
            ]
            return await intake.create_submission(
                customer_name=request_data.customer_name,
                branch=request_data.branch,
                files=files,
                officer=request_data.officer,
                details=request_data.details,
                actor=actor,
            )
    except BaseKycReviewError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating submission: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error while creating submission.")


@router.get("/submissions", response_model=List[Submission], tags=["Submissions"])
async def list_submissions_api(
    status: Optional[List[SubmissionStatus]] = Query(default=None),
    role: Role = Depends(get_current_role),
    store: SubmissionStore = Depends(get_submission_store),
):
    try:
        require_capability(role, Capability.VIEW)
        return store.list(status=status)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.get("/submissions/{submission_id}", response_model=Submission, tags=["Submissions"])
async def get_submission_api(
    submission_id: str,
    role: Role = Depends(get_current_role),
    store: SubmissionStore = Depends(get_submission_store),
):
    try:
        require_capability(role, Capability.VIEW)
        return store.get(submission_id)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.get("/submissions/{submission_id}/timeline", response_model=List[WorkflowStep], tags=["Submissions"])
async def get_submission_timeline_api(
    submission_id: str,
    role: Role = Depends(get_current_role),
    store: SubmissionStore = Depends(get_submission_store),
):
    try:
        require_capability(role, Capability.VIEW)
        return build_workflow_timeline(store.get(submission_id))
    except BaseKycReviewError as e:
        raise to_http_exception(e)


def _note(request_data: Optional[DecisionRequest]) -> Optional[str]:
    return request_data.note if request_data is not None else None


def _decide(
    event: WorkflowEvent,
    submission_id: str,
    note: Optional[str],
    role: Role,
    actor: Optional[str],
    workflow_engine: WorkflowEngine,
) -> Submission:
    require_capability(role, Capability.REVIEW)

    def precheck(current: Submission) -> None:
        if event != WorkflowEvent.ESCALATE and current.status == SubmissionStatus.ESCALATED:
            require_capability(role, Capability.DECIDE_ESCALATED)

    actions = {
        WorkflowEvent.APPROVE: workflow_engine.approve,
        WorkflowEvent.REJECT: workflow_engine.reject,
        WorkflowEvent.ESCALATE: workflow_engine.escalate,
    }
    return actions[event](submission_id, actor=actor, note=note, precheck=precheck)


@router.post("/submissions/{submission_id}/approve", response_model=Submission, tags=["Review"])
async def approve_submission_api(
    submission_id: str,
    request_data: Optional[DecisionRequest] = Body(default=None),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    workflow_engine: WorkflowEngine = Depends(get_workflow_engine),
):
    try:
        return _decide(WorkflowEvent.APPROVE, submission_id, _note(request_data), role, actor, workflow_engine)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.post("/submissions/{submission_id}/reject", response_model=Submission, tags=["Review"])
async def reject_submission_api(
    submission_id: str,
    request_data: Optional[DecisionRequest] = Body(default=None),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    workflow_engine: WorkflowEngine = Depends(get_workflow_engine),
):
    try:
        return _decide(WorkflowEvent.REJECT, submission_id, _note(request_data), role, actor, workflow_engine)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.post("/submissions/{submission_id}/escalate", response_model=Submission, tags=["Review"])
async def escalate_submission_api(
    submission_id: str,
    request_data: Optional[DecisionRequest] = Body(default=None),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    workflow_engine: WorkflowEngine = Depends(get_workflow_engine),
):
    try:
        return _decide(WorkflowEvent.ESCALATE, submission_id, _note(request_data), role, actor, workflow_engine)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.put("/submissions/{submission_id}/officer", response_model=Submission, tags=["Review"])
async def assign_officer_api(
    submission_id: str,
    request_data: AssignOfficerRequest = Body(...),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    workflow_engine: WorkflowEngine = Depends(get_workflow_engine),
):
    try:
        require_capability(role, Capability.REVIEW)
        return workflow_engine.assign_officer(submission_id, request_data.officer, actor=actor)
    except BaseKycReviewError as e:
        raise to_http_exception(e)
