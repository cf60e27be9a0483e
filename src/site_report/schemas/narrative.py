"""Pydantic schemas for parsed narrative text.

ParsedNarrative is derived from Report.narrative_text and never persisted.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel

# Canonical label order; also the order fields are rendered in.
FIELD_LABELS: Tuple[Tuple[str, str], ...] = (
    ("problem_description", "Problem Description"),
    ("recommended_solution", "Recommended Solution"),
    ("priority_level", "Priority Level"),
    ("estimated_cost_range", "Estimated Cost Range"),
    ("safety_concerns", "Safety Concerns"),
)

RECOMMENDED_SERVICES_LABEL = "Recommended Services"
ADDITIONAL_NOTES_LABEL = "Additional Notes"


class NarrativeSection(BaseModel):
    number: Optional[int] = None # the N the text claims in "Photo N:"
    text: str


class ParsedNarrative(BaseModel):
    heading: str
    body: str = ""
    sections: List[NarrativeSection] = []

    def section_for(self, index: int) -> Optional[NarrativeSection]:
        """Section aligned with evidence position `index` (0-based), if any."""
        if 0 <= index < len(self.sections):
            return self.sections[index]
        return None


class ExtractedFields(BaseModel):
    problem_description: Optional[str] = None
    recommended_solution: Optional[str] = None
    priority_level: Optional[str] = None
    estimated_cost_range: Optional[str] = None
    safety_concerns: Optional[str] = None

    def present(self) -> Iterator[Tuple[str, str]]:
        """Yield (label, value) for the fields that were found, in canonical order."""
        for attr, label in FIELD_LABELS:
            value = getattr(self, attr)
            if value is not None:
                yield label, value

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, attr) is None for attr, _ in FIELD_LABELS)


class ClosingSections(BaseModel):
    recommended_services: Optional[str] = None
    additional_notes: Optional[str] = None
