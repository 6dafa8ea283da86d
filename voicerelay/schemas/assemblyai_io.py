from __future__ import annotations

"""Pydantic models for the AssemblyAI REST contract."""

from typing import Literal, Optional

from pydantic import BaseModel


TERMINAL_STATUSES = frozenset({"completed", "error"})


class UploadResponse(BaseModel):
    upload_url: str


class TranscriptRequest(BaseModel):
    audio_url: str
    language_code: Optional[str] = None


class TranscriptJob(BaseModel):
    id: str
    status: Literal["queued", "processing", "completed", "error"]
    text: Optional[str] = None
    error: Optional[str] = None

    model_config = {
        "extra": "allow",  # words, confidence, audio_duration, ...
    }

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
