from __future__ import annotations

"""HTTP client for the AssemblyAI upload and transcript endpoints."""

import asyncio
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from voicerelay.config.settings import Settings
from voicerelay.schemas.assemblyai_io import TranscriptJob, TranscriptRequest, UploadResponse
from voicerelay.schemas.relay import OCTET_STREAM, AudioPayload, UploadReference
from voicerelay.services.errors import TranscribeError, UploadError
from voicerelay.services.logging import get_logger, scrub
from voicerelay.services.metrics import metrics
from voicerelay.services.retry import RetryPolicy, send_with_retry


UPLOAD_PATH = "/v2/upload"
TRANSCRIPT_PATH = "/v2/transcript"


def _transport_detail(exc: httpx.HTTPError) -> str:
    return str(exc) or type(exc).__name__


class AssemblyAIClient:
    """Turns raw audio bytes into text in two remote steps.

    Provider failures are surfaced as UploadError / TranscribeError carrying
    the provider's raw text; nothing is interpreted here.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        retry: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._api_key = settings.assemblyai_api_key
        self._base_url = settings.provider_base_url
        self._timeout = settings.provider.timeout_seconds
        self._poll_interval = settings.provider.poll_interval_seconds
        self._polling_timeout = settings.provider.polling_timeout_seconds
        self._language_code = settings.transcript_language_code
        self._retry = retry or RetryPolicy.from_settings(settings.retry)
        self._transport = transport
        self._sleep = sleep

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers={"authorization": self._api_key},
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        ) as client:
            yield client

    async def upload(self, payload: AudioPayload) -> UploadReference:
        """Send the raw bytes to the provider and return its upload URL.

        Raises UploadError on transport failure or any non-2xx status.
        """
        logger = get_logger(step="upload", size=len(payload))
        with metrics.timer("provider_call_seconds", labels={"step": "upload"}):
            async with self._client() as client:
                try:
                    resp = await send_with_retry(
                        client,
                        "POST",
                        UPLOAD_PATH,
                        policy=self._retry,
                        step="upload",
                        sleep=self._sleep,
                        content=payload.data,
                        headers={"content-type": OCTET_STREAM},
                    )
                except httpx.HTTPError as exc:
                    logger.warning("provider_upload_unreachable", error=_transport_detail(exc))
                    raise UploadError(_transport_detail(exc)) from exc

            if not resp.is_success:
                logger.warning("provider_upload_rejected", status=resp.status_code, preview=resp.text[:200])
                raise UploadError(resp.text or f"HTTP {resp.status_code}", provider_status=resp.status_code)

            try:
                body = UploadResponse.model_validate(resp.json())
            except (ValueError, ValidationError) as exc:
                logger.warning("provider_upload_bad_json", preview=resp.text[:200])
                raise UploadError(f"unexpected upload response: {resp.text[:200]}") from exc

            logger.info("provider_upload_ok", status=resp.status_code)
            return UploadReference(body.upload_url)

    async def transcribe(self, reference: UploadReference) -> str:
        """Submit a transcript job for the reference and wait for its outcome.

        Returns the transcript text ("" when the audio holds no speech).
        Raises TranscribeError when the job cannot be created, fails, or
        polling runs past the configured limit.
        """
        logger = get_logger(step="transcribe")
        start = perf_counter()
        with metrics.timer("provider_call_seconds", labels={"step": "transcribe"}):
            async with self._client() as client:
                job = await self._submit(client, reference)
                logger = logger.bind(transcript_id=job.id)
                logger.info("provider_transcript_submitted", status=job.status)

                while not job.is_terminal:
                    if self._polling_timeout is not None and perf_counter() - start >= self._polling_timeout:
                        logger.warning("provider_transcript_poll_timeout", last_status=job.status)
                        raise TranscribeError(
                            f"Polling timeout: transcript {job.id} still {job.status} "
                            f"after {self._polling_timeout:g}s"
                        )
                    await self._sleep(self._poll_interval)
                    job = await self._fetch(client, job.id)

            if job.status == "error":
                logger.warning("provider_transcript_failed", error=scrub(job.error, reference.url))
                raise TranscribeError(job.error or f"Transcript {job.id} failed")

            logger.info("provider_transcript_ok", chars=len(job.text or ""))
            return job.text or ""

    async def _submit(self, client: httpx.AsyncClient, reference: UploadReference) -> TranscriptJob:
        request = TranscriptRequest(audio_url=reference.url, language_code=self._language_code)
        return await self._call(
            client,
            "POST",
            TRANSCRIPT_PATH,
            json=request.model_dump(exclude_none=True),
        )

    async def _fetch(self, client: httpx.AsyncClient, transcript_id: str) -> TranscriptJob:
        return await self._call(client, "GET", f"{TRANSCRIPT_PATH}/{transcript_id}")

    async def _call(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> TranscriptJob:
        try:
            resp = await send_with_retry(
                client, method, url, policy=self._retry, step="transcribe", sleep=self._sleep, **kwargs
            )
        except httpx.HTTPError as exc:
            raise TranscribeError(_transport_detail(exc)) from exc

        if not resp.is_success:
            raise TranscribeError(self._error_text(resp), provider_status=resp.status_code)
        try:
            return TranscriptJob.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise TranscribeError(f"unexpected transcript response: {resp.text[:200]}") from exc

    @staticmethod
    def _error_text(resp: httpx.Response) -> str:
        # AssemblyAI answers {"error": "..."} on rejected requests
        try:
            data: Optional[dict] = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), str):
            return data["error"]
        return resp.text or f"HTTP {resp.status_code}"
