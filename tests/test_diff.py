"""Tests for the line-level diff engine."""

from __future__ import annotations

from promptforge.diff import DiffKind, DiffLine, diff, format_diff


def test_single_insertion_is_one_added_line() -> None:
    assert diff("a\nc", "a\nb\nc") == [
        DiffLine("a", DiffKind.UNCHANGED),
        DiffLine("b", DiffKind.ADDED),
        DiffLine("c", DiffKind.UNCHANGED),
    ]


def test_single_deletion_keeps_surrounding_lines_unchanged() -> None:
    result = diff("one\ntwo\nthree\nfour", "one\nthree\nfour")

    assert [line.kind for line in result] == [
        DiffKind.UNCHANGED,
        DiffKind.REMOVED,
        DiffKind.UNCHANGED,
        DiffKind.UNCHANGED,
    ]
    assert result[1].text == "two"


def test_empty_lines_are_diffable_entries() -> None:
    result = diff("a\n\nb", "a\nb")

    assert result == [
        DiffLine("a", DiffKind.UNCHANGED),
        DiffLine("", DiffKind.REMOVED),
        DiffLine("b", DiffKind.UNCHANGED),
    ]


def test_replacement_emits_removal_before_addition() -> None:
    result = diff("keep\nold", "keep\nnew")

    assert [(line.kind, line.text) for line in result] == [
        (DiffKind.UNCHANGED, "keep"),
        (DiffKind.REMOVED, "old"),
        (DiffKind.ADDED, "new"),
    ]


def test_format_diff_uses_markers() -> None:
    rendered = format_diff(diff("a\nc", "a\nb\nc"))

    assert rendered == "  a\n+ b\n  c"
