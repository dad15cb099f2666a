from typing import Any

from fastapi import APIRouter, Depends

from ...config import Settings, get_app_settings
from ...models.moderation import ErrorResponse, ModerationRequest, ModerationVerdict
from ...services.moderation import ModerationService, get_moderation_service, normalize_text

router = APIRouter(tags=["moderation"])


@router.post(
    "/moderate",
    response_model=ModerationVerdict,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def moderate(
    moderation_request: ModerationRequest,
    settings: Settings = Depends(get_app_settings),
    moderation_service: ModerationService = Depends(get_moderation_service),
) -> Any:
    """
    Classify a piece of text with the upstream moderation model.

    Args:
        moderation_request: Body holding the text to classify
        settings: Settings the app was built with
        moderation_service: Upstream moderation client

    Returns:
        ModerationVerdict: flagged, per-category scores and per-category flags
    """
    text = normalize_text(moderation_request.text, settings.MAX_TEXT_LENGTH)
    return await moderation_service.moderate(text)
