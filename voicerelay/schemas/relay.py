from __future__ import annotations

"""Relay data model and the client-facing JSON contract."""

from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel


OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class AudioPayload:
    data: bytes
    content_type: str = OCTET_STREAM

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadReference:
    """Provider URL of a just-uploaded blob; valid for one transcription."""

    url: str

    def __repr__(self) -> str:
        return "UploadReference(<redacted>)"

    __str__ = __repr__


@dataclass(frozen=True)
class Success:
    text: str
    kind: Literal["success"] = "success"
    status: int = 200


@dataclass(frozen=True)
class Failure:
    message: str
    status: int = 500
    kind: Literal["failure"] = "failure"


TranscriptResult = Union[Success, Failure]


class TranscriptResponse(BaseModel):
    transcript: str


class ErrorResponse(BaseModel):
    error: str


def to_body(result: TranscriptResult) -> dict:
    """Render a result into one of the two response shapes."""

    if isinstance(result, Success):
        return TranscriptResponse(transcript=result.text).model_dump()
    return ErrorResponse(error=result.message).model_dump()
