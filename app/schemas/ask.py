"""Schemas for the ask endpoint."""

from pydantic import BaseModel, Field, field_validator


class AskRequest(BaseModel):
    """Request body for POST /ask."""

    question: str = Field(..., min_length=1, description="Academic question to answer.")

    @field_validator("question")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be blank")
        return v


class AskResponse(BaseModel):
    """Response for POST /ask. visualAids is omitted when no visual aid was produced."""

    answer: str = Field(..., description="Answer text, or a user-facing apology if both providers failed.")
    visualAids: str | None = Field(None, description="Visual aid as a data URI (data:<mime>;base64,...).")

    model_config = {
        "json_schema_extra": {
            "examples": [{"answer": "A derivative measures...", "visualAids": "data:image/png;base64,AAAA"}]
        }
    }
