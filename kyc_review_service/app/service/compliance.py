# AI-assisted compliance pre-screen. Advisory only: never touches workflow state.
import logging
from typing import Optional

from kyc_review_service.app.config import settings
from kyc_review_service.app.models import Submission
from kyc_review_service.app.service import revisions
from kyc_review_service.app.service.exceptions import ComplianceCheckError, ValidationError
from kyc_review_service.app.service.interfaces.compliance_checker import (
    AbstractComplianceChecker,
    ComplianceCheckResult,
    KycSummaryResult,
)

logger = logging.getLogger(__name__)


async def run_compliance_check(
    checker: AbstractComplianceChecker,
    document_text: Optional[str],
    guidelines: Optional[str] = None,
) -> ComplianceCheckResult:
    if not document_text or not document_text.strip():
        raise ValidationError("Document text is empty. Cannot perform compliance check.", field="document_text")
    try:
        return await checker.check_compliance(document_text, guidelines or settings.REGULATORY_GUIDELINES)
    except ComplianceCheckError:
        raise
    except Exception as e:
        logger.error(f"Compliance check failed: {e}", exc_info=True)
        raise ComplianceCheckError("An error occurred during the compliance check. Please try again later.") from e


def describe_documents(submission: Submission) -> str:
    lines = [
        f"{d.document_type.value} v{d.version}: {d.file_name} ({d.format}, {d.size} bytes)"
        for d in revisions.latest_documents(submission.documents)
    ]
    if submission.details:
        lines.append(f"Extracted text: {submission.details}")
    return "\n".join(lines)


def describe_case(submission: Submission) -> str:
    parts = [
        f"Customer: {submission.customer_name}",
        f"Branch: {submission.branch}",
        f"Officer: {submission.officer or 'N/A'}",
        f"Status: {submission.status.value}",
        f"Amendment rounds: {len(submission.amendment_history)}",
    ]
    for entry in submission.amendment_history:
        parts.append(f"Amendment ({entry.response_type}): {entry.reason} -> {entry.response_comment}")
    return "\n".join(parts)


async def summarize_submission(checker: AbstractComplianceChecker, submission: Submission) -> KycSummaryResult:
    """Asks the collaborator for a supervisor summary of the case and its latest documents."""
    try:
        return await checker.summarize(describe_documents(submission), describe_case(submission))
    except ComplianceCheckError:
        raise
    except Exception as e:
        logger.error(f"KYC summary for submission {submission.id} failed: {e}", exc_info=True)
        raise ComplianceCheckError("An error occurred while summarizing the submission. Please try again later.") from e
