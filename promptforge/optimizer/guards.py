"""Protected-span shielding so rewrites never touch code, paths, URLs or variables."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Dict, List, Tuple

_LITERAL_PATTERN = re.compile(
    r"https?://[^\s\]\)>\"']+"
    r"|\{[A-Za-z0-9_-]+\}"
    r"|`[^`\n]+`"
    r"|(?:(?<!\w)[A-Za-z]:\\|\\\\)[^\s\"'<>|]*[^\s\"'<>|.,;:!?)\]]"
    r"|(?:~|\.{1,2}|[A-Za-z0-9_-]+)?(?:/[A-Za-z0-9._-]+)+/?"
)
_FENCE_MARKERS = ("```", "~~~")


@dataclass
class ShieldedText:
    """Text with protected spans swapped for opaque placeholder tokens."""

    text: str
    literals: Dict[str, str] = field(default_factory=dict)

    def restore(self, text: str) -> str:
        # Longest tokens first so no token can be a prefix of another mid-replace.
        for token in sorted(self.literals, key=len, reverse=True):
            text = text.replace(token, self.literals[token])
        return text

    def intact(self, text: str) -> bool:
        """True when every token survived a transform."""
        return all(token in text for token in self.literals)


def split_code_fences(text: str) -> List[Tuple[bool, str]]:
    """Split ``text`` into ``(is_code, chunk)`` runs of whole lines.

    A line whose stripped start is a fence marker opens or closes a block; an
    unclosed block runs to the end of the text. Chunks keep their newlines so
    joining them reproduces the input exactly.
    """
    chunks: List[Tuple[bool, str]] = []
    buffer: List[str] = []
    in_code = False
    for line in text.splitlines(keepends=True):
        is_fence = line.lstrip().startswith(_FENCE_MARKERS)
        if is_fence and not in_code:
            if buffer:
                chunks.append((False, "".join(buffer)))
            buffer = [line]
            in_code = True
        elif is_fence and in_code:
            buffer.append(line)
            chunks.append((True, "".join(buffer)))
            buffer = []
            in_code = False
        else:
            buffer.append(line)
    if buffer:
        chunks.append((in_code, "".join(buffer)))
    return chunks


def shield(text: str) -> ShieldedText:
    """Replace fenced blocks and inline literals with deterministic tokens."""
    literals: Dict[str, str] = {}
    pieces: List[str] = []
    for is_code, chunk in split_code_fences(text):
        if is_code:
            body = chunk.rstrip("\n")
            trailing = chunk[len(body):]
            token = f"__PF_BLOCK_{len(literals)}__"
            literals[token] = body
            pieces.append(token + trailing)
        else:
            pieces.append(_shield_literals(chunk, literals))
    return ShieldedText(text="".join(pieces), literals=literals)


def protected_spans(text: str) -> List[str]:
    """Every protected span in ``text``, in order of appearance."""
    return list(shield(text).literals.values())


def _shield_literals(chunk: str, literals: Dict[str, str]) -> str:
    def _replace(match: re.Match[str]) -> str:
        token = f"__PF_LITERAL_{len(literals)}__"
        literals[token] = match.group(0)
        return token

    return _LITERAL_PATTERN.sub(_replace, chunk)


__all__ = ["ShieldedText", "protected_spans", "shield", "split_code_fences"]
