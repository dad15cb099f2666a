import copy
import logging
from typing import Any, Dict, Optional

from fastapi import Request
from openai import AsyncOpenAI

from ..config import Settings
from ..core.errors import (
    BadRequestError,
    UpstreamError,
    translate_upstream_failure,
)
from ..models.moderation import ModerationVerdict

logger = logging.getLogger(__name__)

EMPTY_RESULT_MESSAGE = "OpenAI returned an empty moderation result. Please try again."


def normalize_text(text: str, max_length: int = 5000) -> str:
    """Trim the inbound text and enforce the blank/length rules.

    Raises BadRequestError with the client-facing message on the first failed rule.
    """
    trimmed = text.strip()
    if not trimmed:
        raise BadRequestError("'text' must not be blank.")
    if len(trimmed) > max_length:
        raise BadRequestError(f"'text' must not exceed {max_length:,} characters.")
    return trimmed


def _plain_mapping(value: Any) -> Dict[str, Any]:
    # SDK models dump with their wire aliases ("harassment/threatening", ...)
    if value is None:
        return {}
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    return copy.deepcopy(dict(value))


def build_verdict(result: Any) -> ModerationVerdict:
    """Copy one upstream moderation result into a detached verdict."""
    return ModerationVerdict(
        flagged=result.flagged,
        scores=_plain_mapping(result.category_scores),
        categories=_plain_mapping(result.categories),
    )


class ModerationService:
    """Thin async wrapper over the OpenAI Moderations endpoint."""

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.model = settings.MODERATION_MODEL
        if client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": settings.OPENAI_API_KEY,
                # single attempt per request, failures surface immediately
                "max_retries": 0,
            }
            if settings.OPENAI_TIMEOUT_S is not None:
                client_kwargs["timeout"] = settings.OPENAI_TIMEOUT_S
            client = AsyncOpenAI(**client_kwargs)
        self.client = client

    async def moderate(self, text: str) -> ModerationVerdict:
        try:
            moderation = await self.client.moderations.create(model=self.model, input=text)
        except Exception as e:
            raise translate_upstream_failure(e) from e

        results = getattr(moderation, "results", None) or []
        if not results:
            logger.error("OpenAI returned empty results array: %s", moderation)
            raise UpstreamError(EMPTY_RESULT_MESSAGE)

        try:
            return build_verdict(results[0])
        except Exception as e:
            raise translate_upstream_failure(e) from e


def get_moderation_service(request: Request) -> ModerationService:
    return request.app.state.moderation_service
