# API Router for the AI-assisted compliance pre-screen
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from kyc_review_service.app.api.v1.errors import to_http_exception
from kyc_review_service.app.dependencies.engine import get_current_role, get_submission_store
from kyc_review_service.app.models import Role
from kyc_review_service.app.service.compliance import run_compliance_check, summarize_submission
from kyc_review_service.app.service.exceptions import BaseKycReviewError
from kyc_review_service.app.service.interfaces.compliance_checker import (
    AbstractComplianceChecker,
    ComplianceCheckResult,
    KycSummaryResult,
)
from kyc_review_service.app.service.roles import Capability, require_capability
from kyc_review_service.app.service.store import SubmissionStore
from kyc_review_service.infrastructure.compliance_client import get_compliance_checker

logger = logging.getLogger(__name__)
router = APIRouter()


class ComplianceCheckRequest(BaseModel):
    document_text: Optional[str] = None # defaults to the submission's extracted details
    regulatory_guidelines: Optional[str] = None


@router.post("/submissions/{submission_id}/compliance-check", response_model=ComplianceCheckResult, tags=["Compliance"])
async def compliance_check_api(
    submission_id: str,
    request_data: Optional[ComplianceCheckRequest] = Body(default=None),
    role: Role = Depends(get_current_role),
    store: SubmissionStore = Depends(get_submission_store),
    checker: AbstractComplianceChecker = Depends(get_compliance_checker),
):
    try:
        require_capability(role, Capability.REVIEW)
        submission = store.get(submission_id)
        request_data = request_data or ComplianceCheckRequest()
        document_text = request_data.document_text or submission.details
        return await run_compliance_check(checker, document_text, request_data.regulatory_guidelines)
    except BaseKycReviewError as e:
        raise to_http_exception(e)


@router.post("/submissions/{submission_id}/summary", response_model=KycSummaryResult, tags=["Compliance"])
async def summarize_submission_api(
    submission_id: str,
    role: Role = Depends(get_current_role),
    store: SubmissionStore = Depends(get_submission_store),
    checker: AbstractComplianceChecker = Depends(get_compliance_checker),
):
    try:
        require_capability(role, Capability.REVIEW)
        return await summarize_submission(checker, store.get(submission_id))
    except BaseKycReviewError as e:
        raise to_http_exception(e)
