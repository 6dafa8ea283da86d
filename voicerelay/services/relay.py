from __future__ import annotations

"""Transcription relay: one audio payload in, one TranscriptResult out.

Received -> Uploading -> Transcribing -> Succeeded | Failed. Upload always
precedes transcribe; a failed step ends the request.
"""

from typing import Protocol

from voicerelay.schemas.relay import AudioPayload, Failure, Success, TranscriptResult, UploadReference
from voicerelay.services.errors import RelayError
from voicerelay.services.logging import get_logger, scrub
from voicerelay.services.metrics import metrics


class ProviderClient(Protocol):
    async def upload(self, payload: AudioPayload) -> UploadReference: ...

    async def transcribe(self, reference: UploadReference) -> str: ...


def failure_from(error: RelayError) -> Failure:
    return Failure(message=error.message, status=error.status)


def record_outcome(result: TranscriptResult) -> None:
    outcome = "success" if isinstance(result, Success) else f"failure_{result.status}"
    metrics.inc("relay_results_total", labels={"outcome": outcome})


class TranscriptionRelay:
    def __init__(self, provider: ProviderClient) -> None:
        self._provider = provider

    async def run(self, payload: AudioPayload) -> TranscriptResult:
        logger = get_logger(size=len(payload))
        state = "uploading"
        reference: UploadReference | None = None
        try:
            reference = await self._provider.upload(payload)
            state = "transcribing"
            text = await self._provider.transcribe(reference)
        except RelayError as exc:
            secret = reference.url if reference else None
            logger.warning("relay_failed", state=state, status=exc.status, error=scrub(exc.message, secret))
            result: TranscriptResult = failure_from(exc)
        else:
            logger.info("relay_succeeded", chars=len(text))
            result = Success(text=text)
        record_outcome(result)
        return result
