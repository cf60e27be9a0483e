"""Photo captioning with an OpenAI vision model.

describe() never raises: any failure yields NO_DESCRIPTION.
"""

import mimetypes
from typing import Optional, Protocol

from ..config import get_settings
from ..llm.client import LLMClient, llm_client
from ..llm.prompts import load_prompt
from ..log import get_logger

logger = get_logger("captioning")

NO_DESCRIPTION = "No description available."

class Captioner(Protocol):
    def describe(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        ...

def guess_image_type(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime if mime and mime.startswith("image/") else "image/jpeg"

class VisionCaptioner:
    def __init__(self, client: Optional[LLMClient] = None, model: Optional[str] = None):
        self.client = client or llm_client
        self.model = model or get_settings().MODEL_VISION

    def describe(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        if not image_bytes:
            return NO_DESCRIPTION
        try:
            text = self.client.describe_image(image_bytes, load_prompt("caption"), model=self.model, mime_type=mime_type)
        except Exception as e:
            logger.warning(f"Image captioning failed: {e}")
            return NO_DESCRIPTION
        return text or NO_DESCRIPTION
