"""Narrative parser.

Splits the free text returned by the narrative generator into a heading and
one section per "Photo N:" marker. Sections are aligned with evidence by list
position; the N written in the text is kept only for diagnostics.
"""

from __future__ import annotations

import re
from typing import List, Optional

from ..config import get_settings
from ..log import get_logger
from ..schemas.narrative import NarrativeSection, ParsedNarrative

logger = get_logger("parsing.narrative")

PHOTO_MARKER_RE = re.compile(r"Photo\s+(\d+):", re.IGNORECASE)


def clean_heading(line: str) -> str:
    return line.replace("*", "").strip()


def split_sections(body: str) -> List[NarrativeSection]:
    """
    Each "Photo N:" match starts a section that runs to the next match or the
    end of the text. Text before the first marker belongs to no section.
    """
    matches = list(PHOTO_MARKER_RE.finditer(body))
    sections: List[NarrativeSection] = []
    for position, match in enumerate(matches):
        end = matches[position + 1].start() if position + 1 < len(matches) else len(body)
        number = int(match.group(1))
        if number != position + 1:
            logger.warning(
                f"Narrative section {position + 1} is labelled 'Photo {number}'; "
                "aligning by position"
            )
        sections.append(NarrativeSection(number=number, text=body[match.end():end].strip()))
    return sections


def parse_narrative(text: Optional[str], default_heading: Optional[str] = None) -> ParsedNarrative:
    """
    Args:
        text: Raw narrative text, or None when analysis has not run yet
        default_heading: Heading used when there is no text (defaults to settings)

    Returns:
        ParsedNarrative; `sections` may be shorter or longer than the evidence list
    """
    fallback = default_heading or get_settings().DEFAULT_HEADING
    if not text or not text.strip():
        return ParsedNarrative(heading=fallback)

    lines = [line for line in text.split("\n") if line.strip()]
    heading = clean_heading(lines[0]) or fallback
    body = "\n".join(lines[1:])

    sections = split_sections(body)
    if not sections:
        logger.warning("No 'Photo N:' sections found in narrative; falling back to evidence descriptions")

    return ParsedNarrative(heading=heading, body=body, sections=sections)
