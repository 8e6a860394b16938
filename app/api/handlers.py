"""
API handlers: read request data, call services, map results to response models.

Responsibility: Bridge HTTP types and services. The answer service never raises,
so there is no exception-to-HTTP mapping here beyond request validation.
"""

from app.schemas.ask import AskRequest, AskResponse
from app.services.answer_service import answer_academic_question


async def handle_ask(body: AskRequest) -> AskResponse:
    """Answer the question; visualAids stays None unless the service attached one."""
    result = await answer_academic_question(body.question)
    return AskResponse(answer=result["answer"], visualAids=result.get("visualAids"))
