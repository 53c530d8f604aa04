"""
Glossary upload parsing.

A glossary is a plain-text file with one ``term: explanation`` entry per
line.  The explanation may itself contain colons; only the first colon
separates term from explanation.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class GlossaryEntry:
    term: str
    explanation: str


@dataclasses.dataclass
class GlossaryParseResult:
    entries: List[GlossaryEntry]
    invalid_lines: List[int]  # 1-based line numbers

    @property
    def error_message(self) -> Optional[str]:
        if self.invalid_lines:
            shown = ", ".join(str(n) for n in self.invalid_lines[:5])
            if len(self.invalid_lines) > 5:
                shown += f" and {len(self.invalid_lines) - 5} more"
            return (
                f"Invalid format in line(s): {shown}. "
                'Expected format: "Term: Explanation"'
            )
        if not self.entries:
            return 'No valid glossary entries found. Expected format: "Term: Explanation"'
        return None


def parse_glossary(content: str) -> GlossaryParseResult:
    """Parse glossary text; blank lines are skipped, malformed lines reported."""
    entries: List[GlossaryEntry] = []
    invalid: List[int] = []

    for line_no, raw_line in enumerate(content.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue

        term, sep, explanation = line.partition(":")
        if not sep or not term.strip() or not explanation.strip():
            invalid.append(line_no)
            continue

        entries.append(GlossaryEntry(term=term.strip(), explanation=explanation.strip()))

    logger.info(
        "parse_glossary: %d entries, %d invalid lines", len(entries), len(invalid)
    )
    return GlossaryParseResult(entries=entries, invalid_lines=invalid)


def format_glossary(entries: Optional[Sequence[GlossaryEntry]]) -> str:
    """Render entries as the literal ``term: explanation`` block used in prompts."""
    if not entries:
        return ""
    return "\n".join(f"- {entry.term}: {entry.explanation}" for entry in entries)
