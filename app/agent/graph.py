"""
LangGraph question-answering flow: primary → (tool) → visual aid, or failure → classify → fallback.

Orchestration only; provider calls live in app.agent.llm and app.agent.tools.
Every path ends in an Answer with non-empty text: provider failures are stored
in the graph state and turned into a fallback answer or a fixed apology.
"""

import logging
from dataclasses import dataclass
from typing import Literal, TypedDict

from langgraph.graph import END, StateGraph

from app.agent.llm import PrimaryAnswerProvider, SecondaryAnswerProvider
from app.agent.models import Answer, PrimaryToolCall, ToolId, ToolInvocationRecord
from app.agent.tools import NO_VISUAL_AID, VISUAL_AID_TOOLS, VisualAidDecider, VisualAidGenerator
from app.core.config import TUTOR_PROMPT_TEMPLATE
from app.core.errors import (
    BOTH_UNAVAILABLE_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    OVERLOADED_MESSAGE,
    FailureClassification,
    classify_failure,
)

logger = logging.getLogger(__name__)

_GENERATED_FOR_MODEL = "A visual aid was generated and will be shown alongside your answer."


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Flow variant as data.

    uses_tool_aware_primary: the model elects decide/generate tool calls itself.
    uses_decider: (non-tool-aware only) ask the decider first; False always tries to illustrate.
    visual_aids_enabled: False skips every visual-aid step and declares no tools.
    prompt_template: instructional template with a {question} placeholder.
    """

    uses_tool_aware_primary: bool = False
    uses_decider: bool = True
    visual_aids_enabled: bool = True
    prompt_template: str = TUTOR_PROMPT_TEMPLATE


class QAState(TypedDict, total=False):
    question: str
    tool_call: PrimaryToolCall | None
    invocation: ToolInvocationRecord | None
    answer_text: str
    visual_aid: str | None
    failure: Exception | None
    classification: FailureClassification | None
    final_text: str


class QuestionAnsweringOrchestrator:
    """Composes the providers into one request/response cycle. answer() never raises."""

    def __init__(
        self,
        primary: PrimaryAnswerProvider,
        decider: VisualAidDecider,
        generator: VisualAidGenerator,
        secondary: SecondaryAnswerProvider | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self.primary = primary
        self.decider = decider
        self.generator = generator
        self.secondary = secondary
        self.config = config or OrchestratorConfig()
        self._graph = self._build_graph()

    @property
    def _tool_declarations(self) -> list:
        if self.config.uses_tool_aware_primary and self.config.visual_aids_enabled:
            return list(VISUAL_AID_TOOLS.values())
        return []

    # --- visual-aid helpers (soft-fail: errors mean "no visual aid") ---

    async def _decide(self, question: str, answer: str) -> bool:
        try:
            return await self.decider.decide(question, answer)
        except Exception as e:
            logger.warning("[graph:decide] decider failed, treating as false: %s", e)
            return False

    async def _generate(self, question: str, answer: str | None) -> str:
        try:
            return await self.generator.generate(question, answer)
        except Exception as e:
            logger.warning("[graph:generate] visual aid generation failed: %s", e)
            return NO_VISUAL_AID

    # --- nodes ---

    async def _primary_node(self, state: QAState) -> dict:
        """Node 1: primary provider. Text, a tool call, or a stored failure."""
        question = state["question"]
        logger.info("[graph:primary] IN  question_len=%d tool_aware=%s", len(question), bool(self._tool_declarations))
        try:
            reply = await self.primary.generate(question, self._tool_declarations)
        except Exception as e:
            logger.warning("[graph:primary] FAIL %s: %s", type(e).__name__, e)
            return {"failure": e}
        if isinstance(reply, PrimaryToolCall):
            return {"tool_call": reply}
        return {"answer_text": reply.text}

    async def _run_tool_node(self, state: QAState) -> dict:
        """Node 2: resolve the model's tool call by ToolId, then let the model finish its answer."""
        question = state["question"]
        call = state["tool_call"]
        draft = str(call.arguments.get("answer") or "").strip() or None
        logger.info("[graph:run_tool] IN  tool=%s", call.tool.value)

        if call.tool is ToolId.DECIDE_VISUAL_AID:
            decision = await self._decide(question, draft or "")
            record = ToolInvocationRecord(tool=call.tool, result=decision)
            result_for_model = "true" if decision else "false"
        elif call.tool is ToolId.GENERATE_VISUAL_AID:
            reference = await self._generate(question, draft)
            record = ToolInvocationRecord(tool=call.tool, result=reference)
            result_for_model = NO_VISUAL_AID if reference == NO_VISUAL_AID else _GENERATED_FOR_MODEL
        else:
            raise ValueError(f"Unhandled tool: {call.tool!r}")

        try:
            text = await self.primary.resume(question, call, result_for_model, self._tool_declarations)
        except Exception as e:
            logger.warning("[graph:run_tool] FAIL resume %s: %s", type(e).__name__, e)
            return {"invocation": record, "failure": e}
        logger.info("[graph:run_tool] OUT tool=%s text_len=%d", call.tool.value, len(text))
        return {"invocation": record, "answer_text": text}

    async def _visual_aid_node(self, state: QAState) -> dict:
        """Node 3: attach a visual aid when the decider (or the model's own tool call) asked for one."""
        if not self.config.visual_aids_enabled:
            return {"visual_aid": None}
        question = state["question"]
        answer = state["answer_text"]
        invocation = state.get("invocation")

        if self.config.uses_tool_aware_primary:
            if invocation is None:
                return {"visual_aid": None}
            if invocation.tool is ToolId.GENERATE_VISUAL_AID:
                reference = invocation.result
            elif invocation.result:
                reference = await self._generate(question, answer)
            else:
                return {"visual_aid": None}
        else:
            if self.config.uses_decider and not await self._decide(question, answer):
                logger.info("[graph:visual_aid] decider said no")
                return {"visual_aid": None}
            reference = await self._generate(question, answer)

        if not reference or reference == NO_VISUAL_AID:
            logger.info("[graph:visual_aid] OUT none produced")
            return {"visual_aid": None}
        logger.info("[graph:visual_aid] OUT attached len=%d", len(reference))
        return {"visual_aid": reference}

    async def _classify_node(self, state: QAState) -> dict:
        """Node 4: fatal failures end with the generic apology; retriable ones go to the fallback."""
        failure = state["failure"]
        classification = classify_failure(failure)
        logger.warning(
            "[graph:classify_failure] failure=%s classification=%s",
            type(failure).__name__,
            classification.value,
        )
        if classification is FailureClassification.FATAL:
            return {"classification": classification, "final_text": GENERIC_ERROR_MESSAGE}
        if self.secondary is None:
            logger.warning("[graph:classify_failure] no secondary provider configured")
            return {"classification": classification, "final_text": OVERLOADED_MESSAGE}
        return {"classification": classification}

    async def _fallback_node(self, state: QAState) -> dict:
        """Node 5: one attempt at the secondary provider with the raw question. No visual aids."""
        logger.warning("[graph:fallback] primary overloaded; trying secondary provider")
        try:
            text = await self.secondary.generate(state["question"])
        except Exception as e:
            logger.warning("[graph:fallback] FAIL %s: %s", type(e).__name__, e)
            return {"final_text": BOTH_UNAVAILABLE_MESSAGE}
        logger.info("[graph:fallback] OUT text_len=%d", len(text))
        return {"answer_text": text, "visual_aid": None}

    # --- routing ---

    def _route_after_primary(self, state: QAState) -> Literal["classify_failure", "run_tool", "visual_aid"]:
        if state.get("failure") is not None:
            return "classify_failure"
        if state.get("tool_call") is not None:
            return "run_tool"
        return "visual_aid"

    def _route_after_tool(self, state: QAState) -> Literal["classify_failure", "visual_aid"]:
        return "classify_failure" if state.get("failure") is not None else "visual_aid"

    def _route_after_classify(self, state: QAState) -> str:
        return END if state.get("final_text") else "fallback"

    def _build_graph(self):
        """
        primary → visual_aid → END
        primary → run_tool → visual_aid → END
        primary/run_tool → classify_failure → (fallback →) END
        """
        graph = StateGraph(QAState)

        graph.add_node("primary", self._primary_node)
        graph.add_node("run_tool", self._run_tool_node)
        graph.add_node("visual_aid", self._visual_aid_node)
        graph.add_node("classify_failure", self._classify_node)
        graph.add_node("fallback", self._fallback_node)

        graph.set_entry_point("primary")
        graph.add_conditional_edges("primary", self._route_after_primary)
        graph.add_conditional_edges("run_tool", self._route_after_tool)
        graph.add_conditional_edges("classify_failure", self._route_after_classify, ["fallback", END])
        graph.add_edge("visual_aid", END)
        graph.add_edge("fallback", END)

        return graph.compile()

    async def answer(self, question: str) -> Answer:
        """Answer an academic question. Always returns an Answer; failures become apology text."""
        q = (question or "").strip()
        if not q:
            logger.info("[orchestrator] empty question")
            return Answer(GENERIC_ERROR_MESSAGE)
        logger.info("[orchestrator] START question_len=%d", len(q))
        try:
            final = await self._graph.ainvoke({"question": question})
        except Exception:
            logger.exception("[orchestrator] flow failed unexpectedly")
            return Answer(GENERIC_ERROR_MESSAGE)

        if final.get("final_text"):
            logger.info("[orchestrator] END apology")
            return Answer(final["final_text"])
        text = (final.get("answer_text") or "").strip()
        if not text:
            return Answer(GENERIC_ERROR_MESSAGE)
        visual_aid = final.get("visual_aid") or None
        logger.info("[orchestrator] END text_len=%d visual_aid=%s", len(text), visual_aid is not None)
        return Answer(text, visual_aid)
