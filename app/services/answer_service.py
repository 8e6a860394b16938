"""
Academic question answering: wire providers from config and run the orchestrator.

Responsibility: The caller-facing entry point (answer_academic_question). Reads
app.core.config once, injects credentials into the providers, and never raises.
Called by the API layer; no HTTP here.
"""

import logging
from functools import lru_cache

from google import genai

from app.agent.graph import OrchestratorConfig, QuestionAnsweringOrchestrator
from app.agent.llm import PrimaryAnswerProvider, SecondaryAnswerProvider
from app.agent.tools import VisualAidDecider, VisualAidGenerator
from app.core import config
from app.core.errors import GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)


def build_orchestrator() -> QuestionAnsweringOrchestrator:
    """Construct the orchestrator from environment config. Missing keys disable the matching provider."""
    client = genai.Client(api_key=config.GEMINI_API_KEY) if config.GEMINI_API_KEY else None
    if client is None:
        logger.warning("[answer_service] GEMINI_API_KEY not set; primary provider will fail")

    orchestrator_config = OrchestratorConfig(
        uses_tool_aware_primary=config.USE_TOOL_AWARE_PRIMARY,
        uses_decider=config.USE_VISUAL_AID_DECIDER,
        visual_aids_enabled=config.VISUAL_AIDS_ENABLED,
        prompt_template=(
            config.TOOL_AWARE_PROMPT_TEMPLATE if config.USE_TOOL_AWARE_PRIMARY else config.TUTOR_PROMPT_TEMPLATE
        ),
    )

    secondary = None
    if config.HF_API_KEY:
        secondary = SecondaryAnswerProvider(
            api_key=config.HF_API_KEY,
            url=config.HF_CHAT_URL,
            model=config.HF_LLM_MODEL,
            system_prompt=config.FALLBACK_SYSTEM_PROMPT,
            timeout=config.LLM_API_TIMEOUT,
        )
    else:
        logger.warning("[answer_service] HF_API_KEY not set; fallback provider disabled")

    return QuestionAnsweringOrchestrator(
        primary=PrimaryAnswerProvider(
            api_key=config.GEMINI_API_KEY,
            model=config.GEMINI_TEXT_MODEL,
            prompt_template=orchestrator_config.prompt_template,
            client=client,
        ),
        decider=VisualAidDecider(client, config.GEMINI_TEXT_MODEL),
        generator=VisualAidGenerator(client, config.GEMINI_IMAGE_MODEL),
        secondary=secondary,
        config=orchestrator_config,
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> QuestionAnsweringOrchestrator:
    """Shared orchestrator; holds configuration only, no per-request state."""
    return build_orchestrator()


async def answer_academic_question(question: str) -> dict[str, str]:
    """
    Answer a question. Returns {"answer": str} plus "visualAids" (data URI) when one was produced.
    Always resolves, even when the orchestrator cannot be built.
    """
    try:
        orchestrator = get_orchestrator()
    except Exception:
        logger.exception("[answer_service] failed to build orchestrator")
        return {"answer": GENERIC_ERROR_MESSAGE}
    answer = await orchestrator.answer(question)
    return answer.to_dict()
