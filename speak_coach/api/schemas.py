"""Request models for the HTTP surface."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

MAX_MESSAGES = 80


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    text: str = Field(min_length=1, max_length=10000)

    @field_validator("text")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be blank")
        return value


class ChatRequest(BaseModel):
    character: Optional[str] = Field(default=None, max_length=50)
    voice: Optional[str] = Field(default=None, max_length=50)
    level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    scenario: Optional[str] = Field(default=None, max_length=200)
    messages: List[ChatMessage] = Field(default_factory=list, max_length=MAX_MESSAGES)


class RealtimeTokenRequest(BaseModel):
    character: Optional[str] = Field(default=None, max_length=50)
    level: Optional[Literal["beginner", "intermediate", "advanced"]] = None


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class SaveMessageRequest(BaseModel):
    session_id: str = Field(min_length=1, max_length=200)
    role: str = Field(max_length=20)
    content: str = Field(min_length=1, max_length=10000)
    character_name: Optional[str] = Field(default=None, max_length=50)

    @field_validator("content")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("role")
    @classmethod
    def _normalize_role(cls, value: str) -> str:
        # Anything that isn't the learner is stored as the tutor
        return "user" if value == "user" else "assistant"


class SaveSentenceRequest(BaseModel):
    content: str = Field(min_length=1, max_length=10000)
    character_name: str = Field(min_length=1, max_length=50)
    character_voice_id: Optional[str] = Field(default=None, max_length=50)
    session_id: Optional[str] = Field(default=None, max_length=200)

    @field_validator("content")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)
