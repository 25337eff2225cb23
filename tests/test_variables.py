"""Tests for placeholder detection and substitution."""

from __future__ import annotations

from promptforge.variables import detect, resolve


def test_detect_returns_unique_names_in_first_seen_order() -> None:
    text = "Hello {name}. Order {order_id}. Thanks {name}."

    assert detect(text) == ["name", "order_id"]


def test_resolve_substitutes_values_and_reports_unfilled() -> None:
    text = "Hello {name}. Order {order_id}. Thanks {name}."

    resolution = resolve(text, {"name": "Ada"})

    assert resolution.resolved_text == "Hello Ada. Order {order_id}. Thanks Ada."
    assert resolution.detected == ["name", "order_id"]
    assert resolution.unfilled == ["order_id"]


def test_resolve_trims_values_and_treats_blank_as_missing() -> None:
    resolution = resolve("{a} and {b}", {"a": "  first  ", "b": "   "})

    assert resolution.resolved_text == "first and {b}"
    assert resolution.unfilled == ["b"]


def test_adjacent_tokens_resolve_independently() -> None:
    resolution = resolve("{first}{second}{first}", {"first": "{second}", "second": "B"})

    # A substituted value is never rescanned for tokens.
    assert resolution.resolved_text == "{second}B{second}"
    assert resolution.unfilled == []


def test_tokens_with_invalid_characters_are_ignored() -> None:
    assert detect("{not valid} {ok-name_1} {}") == ["ok-name_1"]
