"""Pydantic schemas for the FastAPI endpoints.

Field names on the wire are camelCase to match the web frontend.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_CamelModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=2000, description="The user's message")
    conversation_id: str | None = Field(
        None,
        alias="conversationId",
        max_length=100,
        description="Omit on the first message; reuse the returned id afterwards",
    )
    user_id: str | None = Field(None, alias="userId", max_length=100)

    @field_validator("conversation_id")
    @classmethod
    def _blank_means_new(cls, value: str | None) -> str | None:
        # The frontend sends the string "null" before it has an id
        if value is None or not value.strip() or value.strip() == "null":
            return None
        return value.strip()


class ChatResponse(_CamelModel):
    """Response from the assistant."""

    conversation_id: str = Field(..., alias="conversationId")
    ai_response: str = Field(..., alias="aiResponse")
    service_matched: str | None = Field(None, alias="serviceMatched")
    tool_used: str | None = Field(None, alias="toolUsed")


class ErrorResponse(_CamelModel):
    """Error payload: a readable apology plus a stable machine code."""

    ai_response: str = Field(..., alias="aiResponse")
    error: str
    code: str


class ServiceSummary(_CamelModel):
    name: str
    description: str


class ServiceDetail(_CamelModel):
    id: str | None = None
    name: str
    description: str
    keywords: list[str]
    response: str
    is_complaint: bool = Field(False, alias="isComplaint")


class MessageOut(_CamelModel):
    role: str
    content: str
    timestamp: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "digital-saathi"
