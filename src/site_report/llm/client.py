"""OpenAI client wrapper.

Provides plain-text completions for narrative generation and single-image
descriptions for captioning. The underlying OpenAI client is created on first
use so that importing this module never requires an API key.
"""

import base64
from typing import Optional
from openai import OpenAI
from ..config import get_settings

settings = get_settings()

class LLMClient:
    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key or settings.OPENAI_API_KEY)
        return self._client

    def run_text(self, prompt: str, model: str = "gpt-4o", system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        completion = self.client.chat.completions.create(
            model=model,
            messages=messages,
        )
        return completion.choices[0].message.content or ""

    def describe_image(self, image_bytes: bytes, prompt: str, model: str = "gpt-4o-mini", mime_type: str = "image/jpeg") -> str:
        """Ask a vision model for a short description of one image."""
        encoded = base64.b64encode(image_bytes).decode("ascii")
        completion = self.client.chat.completions.create(
            model=model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                    ],
                }
            ],
            max_tokens=120,
        )
        return (completion.choices[0].message.content or "").strip()

llm_client = LLMClient()
