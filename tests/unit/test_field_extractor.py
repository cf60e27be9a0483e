from site_report.parsing.fields import extract_closing_sections, extract_fields
from site_report.parsing.narrative import parse_narrative


def test_example_scenario_fields(kitchen_narrative):
    parsed = parse_narrative(kitchen_narrative)

    first = extract_fields(parsed.sections[0].text)
    assert first.problem_description == "Cracked tile."
    assert first.priority_level == "Low."
    assert first.safety_concerns is None

    second = extract_fields(parsed.sections[1].text)
    assert second.problem_description == "Leaking pipe."
    assert second.priority_level == "High."
    assert second.safety_concerns == "Water damage risk."

    for fields in (first, second):
        assert fields.recommended_solution is None
        assert fields.estimated_cost_range is None


def test_missing_priority_leaves_other_fields_intact():
    """
    WHY: Each label is searched independently; one missing label must not shift the others.
    HOW: Extract from a section with four of the five labels.
    EXPECTED: Priority is absent, the other four are exact.
    """
    fields = extract_fields(
        "Problem Description: Rotted sill plate.\n"
        "Recommended Solution: Replace the sill.\n"
        "Estimated Cost Range: $800 - $1,200\n"
        "Safety Concerns: None."
    )
    assert fields.priority_level is None
    assert fields.problem_description == "Rotted sill plate."
    assert fields.recommended_solution == "Replace the sill."
    assert fields.estimated_cost_range == "$800 - $1,200"
    assert fields.safety_concerns == "None."


def test_labels_in_any_order():
    fields = extract_fields(
        "Safety Concerns: Trip hazard. Priority Level: Medium. Problem Description: Loose board."
    )
    assert fields.safety_concerns == "Trip hazard."
    assert fields.priority_level == "Medium."
    assert fields.problem_description == "Loose board."


def test_bold_markers_and_bullets_are_cleaned():
    fields = extract_fields(
        "**Problem Description:** Cracked **drywall** seam.\n"
        "- **Priority Level**: Low\n"
        "- Recommended Solution: Tape and mud."
    )
    assert fields.problem_description == "Cracked drywall seam."
    assert fields.priority_level == "Low"
    assert fields.recommended_solution == "Tape and mud."


def test_empty_label_counts_as_absent():
    fields = extract_fields("Problem Description:\nPriority Level: High")
    assert fields.problem_description is None
    assert fields.priority_level == "High"


def test_no_labels_yields_empty_fields():
    fields = extract_fields("Just a sentence about the photo.")
    assert fields.is_empty
    assert list(fields.present()) == []


def test_present_yields_canonical_order():
    fields = extract_fields("Safety Concerns: s. Problem Description: p.")
    assert [label for label, _ in fields.present()] == ["Problem Description", "Safety Concerns"]


def test_closing_labels_end_the_last_field():
    fields = extract_fields(
        "Safety Concerns: Exposed wiring.\nRecommended Services:\n- Electrician"
    )
    assert fields.safety_concerns == "Exposed wiring."


def test_closing_sections_found():
    closing = extract_closing_sections(
        "Photo 1: Problem Description: x\n"
        "Recommended Services:\n- Plumber\n- Tiler\n"
        "Additional Notes: Client will be away until May."
    )
    assert closing.recommended_services == "- Plumber\n- Tiler"
    assert closing.additional_notes == "Client will be away until May."


def test_closing_sections_absent():
    closing = extract_closing_sections("Photo 1: Problem Description: x")
    assert closing.recommended_services is None
    assert closing.additional_notes is None
