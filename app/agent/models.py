"""Value types passed between the orchestrator and its providers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolId(str, Enum):
    """Tools the primary model may elect to call. Values are the declared function names."""

    DECIDE_VISUAL_AID = "decide_visual_aid"
    GENERATE_VISUAL_AID = "generate_visual_aid"


@dataclass(frozen=True)
class Answer:
    """Orchestrator result. text is never empty; visual_aid is an opaque data URI."""

    text: str
    visual_aid: str | None = None

    def to_dict(self) -> dict[str, str]:
        out = {"answer": self.text}
        if self.visual_aid:
            out["visualAids"] = self.visual_aid
        return out


@dataclass(frozen=True)
class PrimaryText:
    text: str


@dataclass(frozen=True)
class PrimaryToolCall:
    tool: ToolId
    arguments: dict[str, Any] = field(default_factory=dict)


PrimaryReply = PrimaryText | PrimaryToolCall


@dataclass(frozen=True)
class ToolInvocationRecord:
    """One resolved tool call; lives for a single orchestration call."""

    tool: ToolId
    result: Any
