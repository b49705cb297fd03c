# API Router for amendment requests and branch responses
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from kyc_review_service.app.api.v1.errors import to_http_exception
from kyc_review_service.app.api.v1.schemas import FileUpload, stage_uploads
from kyc_review_service.app.dependencies.engine import (
    get_amendment_manager,
    get_current_actor,
    get_current_role,
    get_preview_manager,
)
from kyc_review_service.app.models import Amendment, AmendmentRequest, AmendmentRequestDraft, Role
from kyc_review_service.app.service.amendments import AmendmentManager, AmendmentResponse, ResponseFile
from kyc_review_service.app.service.exceptions import BaseKycReviewError
from kyc_review_service.app.service.previews import PreviewResourceManager, PreviewSession
from kyc_review_service.app.service.roles import Capability, require_capability

logger = logging.getLogger(__name__)
router = APIRouter()


class ResolveAmendmentRequest(BaseModel):
    response_comment: str
    response_type: Optional[str] = None
    files: List[FileUpload] = Field(default_factory=list)


@router.post(
    "/submissions/{submission_id}/amendments",
    response_model=AmendmentRequest,
    status_code=201,
    tags=["Amendments"],
    summary="Ask the branch to add, replace or explain documents."
)
async def request_amendment_api(
    submission_id: str,
    request_data: AmendmentRequestDraft = Body(...),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    manager: AmendmentManager = Depends(get_amendment_manager),
):
    try:
        require_capability(role, Capability.REVIEW)
        return manager.request(submission_id, request_data, actor=actor)
    except BaseKycReviewError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error requesting amendment on submission {submission_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error while requesting amendment.")


@router.post(
    "/submissions/{submission_id}/amendments/{request_id}/resolve",
    response_model=Amendment,
    tags=["Amendments"],
    summary="Answer one or more pending amendment requests."
)
async def resolve_amendment_api(
    submission_id: str,
    request_id: str,
    request_data: ResolveAmendmentRequest = Body(...),
    role: Role = Depends(get_current_role),
    actor: Optional[str] = Depends(get_current_actor),
    manager: AmendmentManager = Depends(get_amendment_manager),
    previews: PreviewResourceManager = Depends(get_preview_manager),
):
    try:
        require_capability(role, Capability.RESPOND)
        async with PreviewSession(previews) as session:
            handles = stage_uploads(session, request_data.files)
            response = AmendmentResponse(
                response_comment=request_data.response_comment,
                response_type=request_data.response_type,
                files=[
                    ResponseFile(
                        handle=handle,
                        document_type=upload.document_type,
                        target_document_id=upload.target_document_id,
                        request_id=upload.request_id,
                    )
                    for handle, upload in zip(handles, request_data.files)
                ],
            )
            return await manager.resolve(submission_id, request_id, response, actor=actor)
    except BaseKycReviewError as e:
        raise to_http_exception(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error resolving amendment {request_id} on submission {submission_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error while resolving amendment.")
