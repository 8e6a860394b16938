"""
Tests for the question-answering flow.

Providers are replaced by small fakes that record their calls, so no Gemini or
Hugging Face access is needed. The fallback scenario uses the real
SecondaryAnswerProvider over httpx.MockTransport.
"""

import asyncio

import httpx

from app.agent.graph import OrchestratorConfig, QuestionAnsweringOrchestrator
from app.agent.llm import SecondaryAnswerProvider
from app.agent.models import Answer, PrimaryText, PrimaryToolCall, ToolId
from app.agent.tools import NO_VISUAL_AID
from app.core.errors import (
    BOTH_UNAVAILABLE_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    OVERLOADED_MESSAGE,
    FailureKind,
    FallbackTransportFailure,
    PrimaryGenerationFailure,
)

IMAGE_URI = "data:image/png;base64,AAAA"


class FakePrimary:
    def __init__(self, reply=None, error: Exception | None = None, resume_text: str = "", resume_error=None) -> None:
        self.reply = reply
        self.error = error
        self.resume_text = resume_text
        self.resume_error = resume_error
        self.calls: list[tuple[str, list]] = []
        self.resume_calls: list[tuple[str, PrimaryToolCall, str]] = []

    async def generate(self, question, tools=()):
        self.calls.append((question, list(tools)))
        if self.error is not None:
            raise self.error
        return self.reply

    async def resume(self, question, call, tool_result, tools):
        self.resume_calls.append((question, call, tool_result))
        if self.resume_error is not None:
            raise self.resume_error
        return self.resume_text


class FakeDecider:
    def __init__(self, decision: bool = True, error: Exception | None = None) -> None:
        self.decision = decision
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def decide(self, question, answer):
        self.calls.append((question, answer))
        if self.error is not None:
            raise self.error
        return self.decision


class FakeGenerator:
    def __init__(self, result: str = IMAGE_URI, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    async def generate(self, question, answer=None):
        self.calls.append((question, answer))
        if self.error is not None:
            raise self.error
        return self.result


class FakeSecondary:
    def __init__(self, text: str = "Fallback answer", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[str] = []

    async def generate(self, question):
        self.calls.append(question)
        if self.error is not None:
            raise self.error
        return self.text


def _orchestrator(primary, decider=None, generator=None, secondary=None, **config) -> QuestionAnsweringOrchestrator:
    return QuestionAnsweringOrchestrator(
        primary=primary,
        decider=decider or FakeDecider(),
        generator=generator or FakeGenerator(),
        secondary=secondary,
        config=OrchestratorConfig(**config),
    )


def _answer(orchestrator: QuestionAnsweringOrchestrator, question: str) -> Answer:
    return asyncio.run(orchestrator.answer(question))


class TestPrimarySuccess:
    def test_derivative_scenario_attaches_visual_aid(self) -> None:
        primary = FakePrimary(PrimaryText("A derivative measures..."))
        decider = FakeDecider(True)
        generator = FakeGenerator(IMAGE_URI)
        answer = _answer(_orchestrator(primary, decider, generator), "what is a derivative")
        assert answer.to_dict() == {"answer": "A derivative measures...", "visualAids": IMAGE_URI}
        assert decider.calls == [("what is a derivative", "A derivative measures...")]
        assert generator.calls == [("what is a derivative", "A derivative measures...")]

    def test_decider_false_means_no_visual_aid(self) -> None:
        generator = FakeGenerator()
        answer = _answer(_orchestrator(FakePrimary(PrimaryText("Text")), FakeDecider(False), generator), "q")
        assert answer == Answer("Text")
        assert generator.calls == []

    def test_generator_none_produced_is_soft_fail(self) -> None:
        answer = _answer(_orchestrator(FakePrimary(PrimaryText("Text")), generator=FakeGenerator(NO_VISUAL_AID)), "q")
        assert answer == Answer("Text")
        assert "visualAids" not in answer.to_dict()

    def test_visual_aid_errors_keep_the_answer(self) -> None:
        decider = FakeDecider(error=RuntimeError("boom"))
        answer = _answer(_orchestrator(FakePrimary(PrimaryText("Text")), decider), "q")
        assert answer == Answer("Text")
        generator = FakeGenerator(error=RuntimeError("503 Service Unavailable"))
        secondary = FakeSecondary()
        answer = _answer(_orchestrator(FakePrimary(PrimaryText("Text")), generator=generator, secondary=secondary), "q")
        assert answer == Answer("Text")
        assert secondary.calls == []

    def test_without_decider_always_tries_to_illustrate(self) -> None:
        decider = FakeDecider(False)
        answer = _answer(_orchestrator(FakePrimary(PrimaryText("Text")), decider, uses_decider=False), "q")
        assert answer.visual_aid == IMAGE_URI
        assert decider.calls == []

    def test_visual_aids_disabled(self) -> None:
        primary = FakePrimary(PrimaryText("Text"))
        decider, generator = FakeDecider(), FakeGenerator()
        answer = _answer(
            _orchestrator(primary, decider, generator, uses_tool_aware_primary=True, visual_aids_enabled=False),
            "q",
        )
        assert answer == Answer("Text")
        assert primary.calls == [("q", [])]
        assert decider.calls == [] and generator.calls == []

    def test_prompt_receives_question_unmodified(self) -> None:
        primary = FakePrimary(PrimaryText("Text"))
        _answer(_orchestrator(primary, FakeDecider(False)), "  what is entropy?  ")
        assert primary.calls[0][0] == "  what is entropy?  "


class TestToolAwarePrimary:
    def test_model_elected_generate_returns_reference_unchanged(self) -> None:
        call = PrimaryToolCall(ToolId.GENERATE_VISUAL_AID, {"question": "q", "answer": "draft"})
        primary = FakePrimary(call, resume_text="Final answer")
        generator = FakeGenerator(IMAGE_URI)
        answer = _answer(_orchestrator(primary, generator=generator, uses_tool_aware_primary=True), "q")
        assert answer == Answer("Final answer", IMAGE_URI)
        assert generator.calls == [("q", "draft")]
        assert len(primary.calls[0][1]) == 2
        # the model gets a short confirmation, not the image payload
        assert IMAGE_URI not in primary.resume_calls[0][2]

    def test_model_elected_generate_with_no_media(self) -> None:
        call = PrimaryToolCall(ToolId.GENERATE_VISUAL_AID, {"question": "q"})
        primary = FakePrimary(call, resume_text="Final answer")
        answer = _answer(
            _orchestrator(primary, generator=FakeGenerator(NO_VISUAL_AID), uses_tool_aware_primary=True), "q"
        )
        assert answer == Answer("Final answer")
        assert primary.resume_calls[0][2] == NO_VISUAL_AID

    def test_model_elected_decide_false(self) -> None:
        primary = FakePrimary(PrimaryToolCall(ToolId.DECIDE_VISUAL_AID, {"answer": "draft"}), resume_text="Final")
        generator = FakeGenerator()
        answer = _answer(
            _orchestrator(primary, FakeDecider(False), generator, uses_tool_aware_primary=True), "q"
        )
        assert answer == Answer("Final")
        assert primary.resume_calls[0][2] == "false"
        assert generator.calls == []

    def test_model_elected_decide_true_generates_for_final_text(self) -> None:
        primary = FakePrimary(PrimaryToolCall(ToolId.DECIDE_VISUAL_AID, {"answer": "draft"}), resume_text="Final")
        generator = FakeGenerator()
        answer = _answer(
            _orchestrator(primary, FakeDecider(True), generator, uses_tool_aware_primary=True), "q"
        )
        assert answer == Answer("Final", IMAGE_URI)
        assert generator.calls == [("q", "Final")]

    def test_no_tool_call_means_no_visual_aid(self) -> None:
        decider, generator = FakeDecider(), FakeGenerator()
        answer = _answer(
            _orchestrator(FakePrimary(PrimaryText("Text")), decider, generator, uses_tool_aware_primary=True), "q"
        )
        assert answer == Answer("Text")
        assert decider.calls == [] and generator.calls == []

    def test_resume_overloaded_falls_back_without_visual_aid(self) -> None:
        primary = FakePrimary(
            PrimaryToolCall(ToolId.GENERATE_VISUAL_AID, {}),
            resume_error=PrimaryGenerationFailure(FailureKind.OVERLOADED, "overloaded"),
        )
        secondary = FakeSecondary("Fallback answer")
        answer = _answer(_orchestrator(primary, secondary=secondary, uses_tool_aware_primary=True), "q")
        assert answer == Answer("Fallback answer")
        assert secondary.calls == ["q"]


class TestPrimaryFailure:
    def test_overloaded_invokes_secondary_once_with_original_question(self) -> None:
        secondary = FakeSecondary("Fallback answer")
        primary = FakePrimary(error=Exception("The model is overloaded."))
        answer = _answer(_orchestrator(primary, secondary=secondary), "what is a derivative")
        assert answer == Answer("Fallback answer")
        assert secondary.calls == ["what is a derivative"]

    def test_fatal_failure_skips_secondary(self) -> None:
        secondary = FakeSecondary()
        primary = FakePrimary(error=ValueError("invalid argument"))
        answer = _answer(_orchestrator(primary, secondary=secondary), "q")
        assert answer == Answer(GENERIC_ERROR_MESSAGE)
        assert secondary.calls == []

    def test_empty_output_is_fatal(self) -> None:
        secondary = FakeSecondary()
        primary = FakePrimary(error=PrimaryGenerationFailure(FailureKind.EMPTY_OUTPUT, "no text"))
        assert _answer(_orchestrator(primary, secondary=secondary), "q").text == GENERIC_ERROR_MESSAGE
        assert secondary.calls == []

    def test_both_providers_fail(self) -> None:
        secondary = FakeSecondary(error=FallbackTransportFailure("HTTP 500", status_code=500))
        primary = FakePrimary(error=PrimaryGenerationFailure(FailureKind.SERVICE_UNAVAILABLE, "503"))
        answer = _answer(_orchestrator(primary, secondary=secondary), "q")
        assert answer == Answer(BOTH_UNAVAILABLE_MESSAGE)
        assert answer.visual_aid is None

    def test_retriable_without_secondary(self) -> None:
        primary = FakePrimary(error=Exception("503 Service Unavailable"))
        assert _answer(_orchestrator(primary), "q") == Answer(OVERLOADED_MESSAGE)

    def test_fallback_scenario_over_http(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": "Fallback answer"}}]})

        secondary = SecondaryAnswerProvider(
            api_key="hf-test",
            url="https://example.test/v1/chat/completions",
            model="test-model",
            system_prompt="You are a tutor.",
            transport=httpx.MockTransport(handler),
        )
        primary = FakePrimary(error=Exception("503 Service Unavailable"))
        answer = _answer(_orchestrator(primary, secondary=secondary), "what is a derivative")
        assert answer.to_dict() == {"answer": "Fallback answer"}


def test_blank_question_returns_apology_without_calls() -> None:
    primary = FakePrimary(PrimaryText("Text"))
    answer = _answer(_orchestrator(primary), "   ")
    assert answer == Answer(GENERIC_ERROR_MESSAGE)
    assert primary.calls == []


def test_answer_text_is_never_empty() -> None:
    cases = [
        FakePrimary(PrimaryText("Text")),
        FakePrimary(error=Exception("overloaded")),
        FakePrimary(error=Exception("anything else")),
    ]
    for primary in cases:
        answer = _answer(_orchestrator(primary, FakeDecider(False), secondary=FakeSecondary(error=Exception("down"))), "q")
        assert answer.text
