"""Tests for section parsing and editing on the rewrite path."""

from __future__ import annotations

from promptforge.optimizer import sections as sec


def test_classify_heading_accepts_markdown_bold_and_known_labels() -> None:
    assert sec.classify_heading("## Output Format") == ("output_format", "Output Format")
    assert sec.classify_heading("**Acceptance Criteria**") == (
        "success_criteria",
        "Acceptance Criteria",
    )
    assert sec.classify_heading("Constraints:") == ("constraints", "Constraints")
    assert sec.classify_heading("Random label:") is None
    assert sec.classify_heading("## Appendix") == (None, "Appendix")


def test_render_sections_round_trips_text() -> None:
    text = "intro\n\n## Goal\nShip it\n\nConstraints:\n- fast\n"

    assert sec.render_sections(sec.parse_sections(text)) == text


def test_append_to_section_skips_existing_lines() -> None:
    text = "### Constraints\n- Keep it small\n\n### Deliverables\n1. A patch"

    updated = sec.append_to_section(text, "constraints", ["- keep it SMALL", "- No new deps"])

    assert updated == (
        "### Constraints\n- Keep it small\n- No new deps\n\n### Deliverables\n1. A patch"
    )


def test_append_to_section_adds_missing_section_at_end() -> None:
    updated = sec.append_to_section("Do the thing\n\n", "questions", ["- Why?"])

    assert updated == "Do the thing\n\n### Questions\n- Why?"


def test_replace_section_body_keeps_trailing_blank_lines() -> None:
    text = "### Deliverables\n- one\n\n### Questions\n- q"

    updated = sec.replace_section_body(text, "deliverables", ["1. a", "2. b"])

    assert updated == "### Deliverables\n1. a\n2. b\n\n### Questions\n- q"


def test_ensure_goal_heading_promotes_preamble() -> None:
    assert sec.ensure_goal_heading("\nShip it\n### Constraints\n- x", "fallback") == (
        "\n### Goal\nShip it\n### Constraints\n- x"
    )
    assert sec.ensure_goal_heading("### Constraints\n- x", "Fallback goal") == (
        "### Goal\nFallback goal\n\n### Constraints\n- x"
    )


def test_canonicalize_orders_and_merges_sections() -> None:
    text = (
        "Build the importer\n## Deliverables\n- code\n"
        "## Constraints\n- no deps\n## Deliverables\n- docs"
    )

    assert sec.canonicalize(text) == (
        "### Goal\nBuild the importer\n\n"
        "### Constraints\n- no deps\n\n"
        "### Deliverables\n- code\n\n- docs"
    )
