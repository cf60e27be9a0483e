"""Label-anchored field extraction.

Every label is searched independently, so fields may come in any order and any
subset may be missing. A value runs from its "Label:" to whichever label comes
next, or to the end of the text.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Pattern

from ..schemas.narrative import (
    ADDITIONAL_NOTES_LABEL,
    FIELD_LABELS,
    RECOMMENDED_SERVICES_LABEL,
    ClosingSections,
    ExtractedFields,
)

_CLOSING_LABELS = (RECOMMENDED_SERVICES_LABEL, ADDITIONAL_NOTES_LABEL)
_DANGLING_BULLET_RE = re.compile(r"(?:^|\n)[ \t]*[-•][ \t]*$")
_BLANK_LINES_RE = re.compile(r"\n{2,}")


def _label_pattern(labels: Iterable[str]) -> Pattern[str]:
    # Tolerates bold markers between label and colon: "**Priority Level**:"
    alternation = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"({alternation})\**[ \t]*:", re.IGNORECASE)


_FIELD_RE = _label_pattern([label for _, label in FIELD_LABELS] + list(_CLOSING_LABELS))
_CLOSING_RE = _label_pattern(_CLOSING_LABELS)


def clean_value(raw: str) -> str:
    value = raw.replace("*", "").strip()
    value = _DANGLING_BULLET_RE.sub("", value).strip()
    return _BLANK_LINES_RE.sub("\n", value)


def strip_closing_sections(text: str) -> str:
    """Text up to the first "Recommended Services:" / "Additional Notes:" label."""
    match = _CLOSING_RE.search(text)
    return text[:match.start()] if match else text


def scan_labels(text: str, pattern: Pattern[str], keys_by_label: Dict[str, str]) -> Dict[str, str]:
    """
    Returns {key: value} for every wanted label found in `text`.
    Labels that match `pattern` but are not in `keys_by_label` still end the
    preceding value. The first non-empty occurrence of a label wins.
    """
    hits = list(pattern.finditer(text))
    found: Dict[str, str] = {}
    for i, hit in enumerate(hits):
        key = keys_by_label.get(hit.group(1).lower())
        if key is None or key in found:
            continue
        end = hits[i + 1].start() if i + 1 < len(hits) else len(text)
        value = clean_value(text[hit.end():end])
        if value:
            found[key] = value
    return found


def extract_fields(section_text: str) -> ExtractedFields:
    if not section_text:
        return ExtractedFields()
    keys = {label.lower(): attr for attr, label in FIELD_LABELS}
    return ExtractedFields(**scan_labels(section_text, _FIELD_RE, keys))


def extract_closing_sections(body: str) -> ClosingSections:
    """Pull "Recommended Services:" and "Additional Notes:" out of the narrative body."""
    if not body:
        return ClosingSections()
    keys = {
        RECOMMENDED_SERVICES_LABEL.lower(): "recommended_services",
        ADDITIONAL_NOTES_LABEL.lower(): "additional_notes",
    }
    return ClosingSections(**scan_labels(body, _CLOSING_RE, keys))
