"""Narrative generation.

Sends the ordered photo descriptions to the LLM and returns its free-text
report. The requested structure ("Photo N:" sections with labelled fields) is
asked for but not enforced; parsing copes with whatever comes back.
"""

from typing import Optional, Protocol, Sequence, Tuple
from .client import LLMClient, llm_client
from .prompts import load_prompt
from ..config import get_settings
from ..errors import CollaboratorError
from ..log import get_logger

logger = get_logger("llm.narrative")

class Narrator(Protocol):
    def generate(self, descriptions: Sequence[Tuple[int, str]]) -> str:
        ...

def build_narrative_prompt(descriptions: Sequence[Tuple[int, str]], template: Optional[str] = None) -> str:
    prompt_template = template if template is not None else load_prompt("narrative")
    photo_lines = []
    for number, description in descriptions:
        text = description.strip() or "(no description provided)"
        photo_lines.append(f"Photo {number}:\nDescription: {text}")

    return (
        f"{prompt_template}\n\n"
        f"# Photos\n" + "\n\n".join(photo_lines)
    )

class NarrativeGenerator:
    def __init__(self, client: Optional[LLMClient] = None, model: Optional[str] = None):
        self.client = client or llm_client
        self.model = model or get_settings().MODEL_NARRATIVE

    def generate(self, descriptions: Sequence[Tuple[int, str]]) -> str:
        """
        Args:
            descriptions: (photo number, description) pairs in evidence order

        Returns:
            The raw narrative text

        Raises:
            CollaboratorError: the LLM call failed or returned nothing
        """
        prompt = build_narrative_prompt(descriptions)
        try:
            text = self.client.run_text(prompt, model=self.model)
        except Exception as e:
            logger.error(f"Narrative generation failed: {e}")
            raise CollaboratorError.wrap("narrative", "generate", e) from e

        if not text.strip():
            raise CollaboratorError("narrative", "generate", message="Narrative generation returned no text")
        logger.info(f"Generated narrative for {len(descriptions)} photos ({len(text)} chars)")
        return text
