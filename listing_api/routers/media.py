"""
Media endpoints: upload and delete by action tag, and bulk discard of
uploads a closed property form never saved.
"""

from fastapi import APIRouter, Depends
from typing import Union

from listing_api.schemas.media import (
    MediaDeleteResponse,
    MediaDiscardRequest,
    MediaDiscardResponse,
    MediaRequest,
    MediaUploadResponse,
)
from listing_api.schemas.records import UserRecord
from listing_api.services.error_handler import ERROR_RESPONSES
from listing_api.services.media import MediaService
from listing_api.utils.dependencies import get_media_service, require_back_office
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["Media"])


@router.post(
    "",
    response_model=Union[MediaUploadResponse, MediaDeleteResponse],
    summary="Upload or delete media",
    description=(
        "upload takes a base64 data URL of an image or short video (10MB max) in file; "
        "delete takes the public_id returned by upload."
    ),
    responses={code: ERROR_RESPONSES[code] for code in (401, 403, 422)}
)
async def handle_media(
    request: MediaRequest,
    current_user: UserRecord = Depends(require_back_office),
    media_service: MediaService = Depends(get_media_service)
) -> Union[MediaUploadResponse, MediaDeleteResponse]:
    if request.action == "upload":
        return await media_service.upload(request.file)
    return await media_service.delete(request.public_id)


@router.post(
    "/discard",
    response_model=MediaDiscardResponse,
    summary="Discard unsaved uploads",
    description="Each URL is deleted independently; failures are reported, never fatal.",
    responses={code: ERROR_RESPONSES[code] for code in (401, 403)}
)
async def discard_media(
    request: MediaDiscardRequest,
    current_user: UserRecord = Depends(require_back_office),
    media_service: MediaService = Depends(get_media_service)
) -> MediaDiscardResponse:
    failed = await media_service.discard_uploads(request.urls)
    if failed:
        logger.warning(f"{len(failed)} of {len(request.urls)} uploads could not be discarded")
    return MediaDiscardResponse(discarded=len(request.urls) - len(failed), failed=failed)
