from __future__ import annotations

"""Failure taxonomy of the transcription relay.

Each error carries the HTTP status the relay answers with, so the boundary
never has to guess from the message text.
"""


class RelayError(Exception):
    """Base error of the relay; `message` is what the client sees."""

    status: int = 500

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class BodyReadError(RelayError):
    """The inbound request body could not be read as bytes."""

    status = 400

    def __init__(self, detail: str = "Could not read audio from request body") -> None:
        super().__init__(detail)


class UploadError(RelayError):
    """Provider rejected the upload or was unreachable."""

    def __init__(self, detail: str, *, provider_status: int | None = None) -> None:
        super().__init__(f"Upload failed: {detail}")
        self.detail = detail
        self.provider_status = provider_status


class TranscribeError(RelayError):
    """Provider rejected, failed or never finished the transcription job."""

    def __init__(self, detail: str, *, provider_status: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.provider_status = provider_status
