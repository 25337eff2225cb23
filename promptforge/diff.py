"""Line-level diffing for before/after prompt comparison."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List


class DiffKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffLine:
    text: str
    kind: DiffKind

    @property
    def marker(self) -> str:
        return {DiffKind.UNCHANGED: " ", DiffKind.ADDED: "+", DiffKind.REMOVED: "-"}[self.kind]


def diff(old: str, new: str) -> List[DiffLine]:
    """Align ``old`` and ``new`` by longest common subsequence of lines.

    Empty lines are ordinary entries. When a removal and an addition score the
    same, the removal is emitted first.
    """
    old_lines = old.split("\n")
    new_lines = new.split("\n")
    old_count = len(old_lines)
    new_count = len(new_lines)

    # lcs[i][j] holds the LCS length of old_lines[i:] and new_lines[j:].
    lcs = [[0] * (new_count + 1) for _ in range(old_count + 1)]
    for i in range(old_count - 1, -1, -1):
        row = lcs[i]
        below = lcs[i + 1]
        for j in range(new_count - 1, -1, -1):
            if old_lines[i] == new_lines[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    results: List[DiffLine] = []
    i = j = 0
    while i < old_count and j < new_count:
        if old_lines[i] == new_lines[j]:
            results.append(DiffLine(old_lines[i], DiffKind.UNCHANGED))
            i += 1
            j += 1
        elif lcs[i + 1][j] >= lcs[i][j + 1]:
            results.append(DiffLine(old_lines[i], DiffKind.REMOVED))
            i += 1
        else:
            results.append(DiffLine(new_lines[j], DiffKind.ADDED))
            j += 1
    results.extend(DiffLine(line, DiffKind.REMOVED) for line in old_lines[i:])
    results.extend(DiffLine(line, DiffKind.ADDED) for line in new_lines[j:])
    return results


def format_diff(lines: List[DiffLine]) -> str:
    """Render diff entries with ``+``/``-``/space prefixes."""
    return "\n".join(f"{line.marker} {line.text}".rstrip() for line in lines)


__all__ = ["DiffKind", "DiffLine", "diff", "format_diff"]
