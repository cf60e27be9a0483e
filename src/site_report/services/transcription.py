"""Voice note transcription via a Whisper inference endpoint.

Posts raw audio bytes and reads back {"text": ...}. Connection errors are
retried a few times; anything else surfaces as CollaboratorError.
"""

from typing import Optional, Protocol

import httpx
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_exception_type

from ..config import get_settings
from ..errors import CollaboratorError
from ..log import get_logger

logger = get_logger("transcription")

class Transcriber(Protocol):
    def transcribe(self, audio_bytes: bytes) -> str:
        ...

class WhisperTranscriber:
    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings()
        self.url = url or settings.TRANSCRIPTION_URL
        self.timeout = timeout or settings.TRANSCRIPTION_TIMEOUT
        self.headers = {
            "Content-Type": "audio/wav",
            "Accept": "application/json",
        }
        token = api_key or settings.HUGGINGFACE_API_KEY
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(2),
        retry=retry_if_exception_type(httpx.RequestError),
        reraise=True
    )
    def _post(self, audio_bytes: bytes) -> dict:
        with httpx.Client(timeout=self.timeout, headers=self.headers) as client:
            resp = client.post(self.url, content=audio_bytes)
            resp.raise_for_status()
            return resp.json()

    def transcribe(self, audio_bytes: bytes) -> str:
        if not audio_bytes:
            raise CollaboratorError("transcription", "transcribe", message="Audio file is empty")
        try:
            data = self._post(audio_bytes)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Speech to text failed: {e}")
            raise CollaboratorError.wrap("transcription", "transcribe", e) from e

        text = data.get("text") if isinstance(data, dict) else None
        if text is None:
            raise CollaboratorError("transcription", "transcribe", message=f"Unexpected transcription response: {data!r}")
        return text.strip()
