"""
Visual-aid tools: decide whether a question/answer pair needs a visual aid, and generate one.

Both are plain async calls the orchestrator can run as a decision step, and are
also declared as Gemini functions (VISUAL_AID_TOOLS) for tool-aware answering.
"""

import base64
import logging
from typing import Any

from google.genai import types

from app.agent.models import ToolId

logger = logging.getLogger(__name__)

# Returned instead of a data URI when the image model produced no media.
NO_VISUAL_AID = "No visual aid generated."

_QUESTION_SCHEMA = types.Schema(type="STRING", description="The academic question.")
_ANSWER_SCHEMA = types.Schema(type="STRING", description="The answer (or a draft of it) being explained.")

# Gemini function-calling declarations, keyed by the ToolId they resolve to
VISUAL_AID_TOOLS: dict[ToolId, types.FunctionDeclaration] = {
    ToolId.DECIDE_VISUAL_AID: types.FunctionDeclaration(
        name=ToolId.DECIDE_VISUAL_AID.value,
        description=(
            "Decide whether a diagram, chart, or illustration would materially help a student "
            "understand the answer. Returns true or false."
        ),
        parameters=types.Schema(
            type="OBJECT",
            properties={"question": _QUESTION_SCHEMA, "answer": _ANSWER_SCHEMA},
            required=["question", "answer"],
        ),
    ),
    ToolId.GENERATE_VISUAL_AID: types.FunctionDeclaration(
        name=ToolId.GENERATE_VISUAL_AID.value,
        description="Generates visual aids such as diagrams or charts to explain a concept.",
        parameters=types.Schema(
            type="OBJECT",
            properties={"question": _QUESTION_SCHEMA, "answer": _ANSWER_SCHEMA},
            required=["question"],
        ),
    ),
}


def parse_decision(raw: str | None) -> bool:
    """Only a literal true (trimmed, any case) counts as yes."""
    return (raw or "").strip().lower() == "true"


class VisualAidDecider:
    """Binary classifier: would a visual aid materially help this answer?"""

    def __init__(self, client: Any, model: str) -> None:
        self._client = client
        self.model = model

    async def decide(self, question: str, answer: str) -> bool:
        if self._client is None:
            logger.warning("[tools:decide_visual_aid] no Gemini client; returning False")
            return False
        prompt = (
            "Would a diagram, chart, or illustration materially help a student understand the answer "
            "below? Reply with exactly one word: true or false.\n\n"
            f"Question: {question}\n\nAnswer: {answer}"
        )
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=0.0),
        )
        raw = getattr(response, "text", None)
        decision = parse_decision(raw)
        logger.info("[tools:decide_visual_aid] OUT raw=%r decision=%s", (raw or "")[:20], decision)
        return decision


class VisualAidGenerator:
    """Image generation through a Gemini image model; returns a data URI or NO_VISUAL_AID."""

    def __init__(self, client: Any, model: str) -> None:
        self._client = client
        self.model = model

    async def generate(self, question: str, answer: str | None = None) -> str:
        if self._client is None:
            logger.warning("[tools:generate_visual_aid] no Gemini client")
            return NO_VISUAL_AID
        contents = [f"Question: {question}"]
        if answer:
            contents.append(
                f"Answer: {answer}. Generate a visual aid like an image, diagram, or chart to help explain this answer."
            )
        else:
            contents.append("Generate a visual aid like an image, diagram, or chart to help explain the answer.")

        logger.info("[tools:generate_visual_aid] IN  model=%s question_len=%d", self.model, len(question))
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            # Image-only requests are rejected; TEXT must be requested alongside IMAGE.
            config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        )

        candidates = getattr(response, "candidates", None) or []
        if candidates and candidates[0].content:
            for part in candidates[0].content.parts or []:
                inline = getattr(part, "inline_data", None)
                if inline and inline.data and (inline.mime_type or "").startswith("image/"):
                    encoded = base64.b64encode(inline.data).decode("ascii")
                    logger.info("[tools:generate_visual_aid] OUT mime=%s bytes=%d", inline.mime_type, len(inline.data))
                    return f"data:{inline.mime_type};base64,{encoded}"

        logger.info("[tools:generate_visual_aid] OUT no image parts")
        return NO_VISUAL_AID
