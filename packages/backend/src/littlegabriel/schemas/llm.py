"""Pydantic schemas for the chat and sermon endpoints."""

from typing import Optional

from pydantic import Field

from littlegabriel.schemas.common import ApiModel


# ─── Chat ───────────────────────────────────────────────

class ChatMessageIn(ApiModel):
    role: str = Field(..., pattern=r"^(user|assistant|system)$")
    content: str


class ChatRequest(ApiModel):
    messages: list[ChatMessageIn] = Field(default_factory=list)


# ─── Sermon ─────────────────────────────────────────────

class SermonRequest(ApiModel):
    title: Optional[str] = None
    bible_passage: str = ""
    theme: str = ""
    audience_type: str = "general"
    length_minutes: int = Field(20, ge=1, le=120)
    additional_notes: Optional[str] = None


class SermonPoint(ApiModel):
    title: str
    content: str


class Sermon(ApiModel):
    title: str
    introduction: str
    main_points: list[SermonPoint] = Field(default_factory=list)
    conclusion: str
    scripture_references: list[str] = Field(default_factory=list)
    illustrations: list[str] = Field(default_factory=list)
