from __future__ import annotations

"""Relay endpoint: raw audio body in, transcript or error JSON out."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from voicerelay.config.settings import Settings, get_settings
from voicerelay.schemas.relay import AudioPayload, ErrorResponse, TranscriptResponse, to_body
from voicerelay.services.errors import BodyReadError
from voicerelay.services.logging import get_logger
from voicerelay.services.provider_client import AssemblyAIClient
from voicerelay.services.relay import TranscriptionRelay, failure_from, record_outcome


router = APIRouter()


def get_relay(settings: Settings = Depends(get_settings)) -> TranscriptionRelay:
    return TranscriptionRelay(AssemblyAIClient(settings))


async def read_audio_payload(request: Request) -> AudioPayload:
    try:
        data = await request.body()
    except (ClientDisconnect, RuntimeError) as exc:
        get_logger().warning("relay_body_unreadable", reason=type(exc).__name__)
        raise BodyReadError() from exc
    return AudioPayload(data=data)


@router.post(
    "/api/transcribe",
    response_model=TranscriptResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def transcribe(request: Request, relay: TranscriptionRelay = Depends(get_relay)) -> JSONResponse:
    try:
        payload = await read_audio_payload(request)
    except BodyReadError as exc:
        result = failure_from(exc)
        record_outcome(result)
    else:
        result = await relay.run(payload)
    return JSONResponse(status_code=result.status, content=to_body(result))
