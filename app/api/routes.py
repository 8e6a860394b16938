"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging

from fastapi import APIRouter

from app.api.handlers import handle_ask
from app.schemas.ask import AskRequest, AskResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Academic Q&A backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Ask ---

@router.post(
    "/ask",
    response_model=AskResponse,
    response_model_exclude_none=True,
    tags=["ask"],
    summary="Answer an academic question",
    description="Send a question; receive an answer and, when helpful, a visual aid as a data URI. "
    "Always 200 for a valid question: provider failures come back as an apology in 'answer'. 422 on blank input.",
)
async def post_ask(body: AskRequest) -> AskResponse:
    logger.info("[api:post_ask] IN  question_len=%d", len(body.question))
    response = await handle_ask(body)
    logger.info("[api:post_ask] OUT answer_len=%d visual_aid=%s", len(response.answer), response.visualAids is not None)
    return response
