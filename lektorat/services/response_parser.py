"""
Parsing of semi-structured model output into text + categorised change list.

Models are asked (see ``prompts.py``) to answer with two labelled sections,
e.g. ``EDITED TEXT:`` / ``CHANGES:`` or ``TRANSLATED TEXT:`` / ``NOTES:``,
with change items grouped under ``CATEGORY: <name>`` headers.  In practice
the output drifts: bold markers, headings, German labels, missing colons,
no sections at all.  Parsing therefore runs through ordered tiers, first
match wins per section:

  1. primary:   the exact label, optionally bolded / heading-marked, colon required
  2. secondary: label synonyms (incl. German), flexible spacing, colon optional
  3. heuristic: no label anywhere: classify sentences by change keywords
  4. fallback:  whole content as text, placeholder as the only change item

Nothing in this module raises on malformed input.

Public API
----------
split_sections(content, schemes)      -> AIResponse      (raw two-section split)
parse_items(block, orphan_policy)     -> List[ChangeItem]
response_items(response, ...)         -> List[ChangeItem]
strip_emphasis(text), remove_markdown(text)
"""
from __future__ import annotations

import dataclasses
import functools
import logging
import re
from typing import Callable, List, Optional, Pattern, Sequence, Tuple

from lektorat.services.prompts import (
    CATEGORY_LABEL,
    CHANGES_LABEL,
    EDITED_TEXT_LABEL,
    NOTES_LABEL,
    TRANSLATED_TEXT_LABEL,
)

logger = logging.getLogger(__name__)

NO_CHANGES_PLACEHOLDER = (
    "The response contained no structured list of changes. "
    "The complete answer is shown as text."
)
EMPTY_RESPONSE_PLACEHOLDER = "The model returned an empty response. Please try again."
GENERAL_CATEGORY = "General"

# Unstructured change lines shorter than this are treated as noise ("---", "etc.")
MIN_UNSTRUCTURED_LINE_LENGTH = 10

ORPHANS_TO_GENERAL = "general"
ORPHANS_DROP = "drop"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ChangeItem:
    """One line of a flattened category / detail list."""

    text: str
    is_category: bool = False


# Translation notes share the change-item shape
NoteItem = ChangeItem


@dataclasses.dataclass(frozen=True)
class AIResponse:
    """
    Raw two-section split of one model answer.

    ``is_placeholder`` marks soft failures (empty payload, no recognisable
    structure): ``changes`` then holds a human-readable message instead of
    a change block.
    """

    text: str
    changes: str
    is_placeholder: bool = False
    tier: str = "primary"


@dataclasses.dataclass
class ParsedResponse:
    text: str
    items: List[ChangeItem]


@dataclasses.dataclass(frozen=True)
class SectionScheme:
    """Label vocabulary for one kind of answer."""

    name: str
    body_label: str
    list_label: str
    body_synonyms: Tuple[str, ...] = ()
    list_synonyms: Tuple[str, ...] = ()


EDITING_SCHEME = SectionScheme(
    name="editing",
    body_label=EDITED_TEXT_LABEL,
    list_label=CHANGES_LABEL,
    body_synonyms=(
        "LEKTORIERTER TEXT",
        "KORRIGIERTER TEXT",
        "CORRECTED TEXT",
        "REVISED TEXT",
        "EDITED VERSION",
    ),
    list_synonyms=(
        "ÄNDERUNGEN",
        "CHANGES MADE",
        "LIST OF CHANGES",
        "CORRECTIONS",
        "KORREKTUREN",
    ),
)

TRANSLATION_SCHEME = SectionScheme(
    name="translation",
    body_label=TRANSLATED_TEXT_LABEL,
    list_label=NOTES_LABEL,
    body_synonyms=("ÜBERSETZTER TEXT", "TRANSLATION", "ÜBERSETZUNG"),
    list_synonyms=(
        "ANMERKUNGEN",
        "TRANSLATOR NOTES",
        "TRANSLATOR'S NOTES",
        "TRANSLATION NOTES",
    ),
)

ALL_SCHEMES: Tuple[SectionScheme, ...] = (EDITING_SCHEME, TRANSLATION_SCHEME)


# ---------------------------------------------------------------------------
# Label tiers
# ---------------------------------------------------------------------------

_LINE_START = r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*|__)?[ \t]*"
_EMPHASIS_CLOSE = r"[ \t]*(?:\*\*|__)?[ \t]*"


def _label_alternation(labels: Sequence[str], word_sep: str) -> str:
    parts = [word_sep.join(re.escape(word) for word in label.split()) for label in labels]
    return "(?:" + "|".join(parts) + ")"


@functools.lru_cache(maxsize=None)
def _primary_pattern(labels: Sequence[str]) -> Pattern[str]:
    """``EDITED TEXT:``, ``**EDITED TEXT:**``, ``## EDITED TEXT**:`` …"""
    return re.compile(
        _LINE_START
        + _label_alternation(labels, r"[ \t]+")
        + _EMPHASIS_CLOSE
        + r":"
        + _EMPHASIS_CLOSE,
        re.IGNORECASE | re.MULTILINE,
    )


@functools.lru_cache(maxsize=None)
def _secondary_pattern(labels: Sequence[str], colon_required: bool = False) -> Pattern[str]:
    """Looser: flexible word spacing, colon optional when the label ends the line."""
    colon = r":" + _EMPHASIS_CLOSE
    if not colon_required:
        colon = r"(?:" + colon + r"|(?=\r?\n|\Z))"
    return re.compile(
        _LINE_START
        + _label_alternation(labels, r"[ \t_\-]*")
        + _EMPHASIS_CLOSE
        + colon,
        re.IGNORECASE | re.MULTILINE,
    )


@dataclasses.dataclass(frozen=True)
class SectionTier:
    name: str
    labels: Callable[[str, Tuple[str, ...]], Tuple[str, ...]]
    pattern: Callable[[Sequence[str]], Pattern[str]]

    def find(
        self,
        content: str,
        label: str,
        synonyms: Tuple[str, ...],
        pos: int = 0,
        endpos: Optional[int] = None,
    ) -> Optional[re.Match]:
        pattern = self.pattern(self.labels(label, synonyms))
        return pattern.search(content, pos, len(content) if endpos is None else endpos)


SECTION_TIERS: Tuple[SectionTier, ...] = (
    SectionTier("primary", lambda label, _syn: (label,), _primary_pattern),
    SectionTier("secondary", lambda label, syn: (label,) + syn, _secondary_pattern),
)

# Ends the body: a bare "Notes" or "Corrections" line is an ordinary heading
# unless the answer also wrote its body label without a colon.
_STRICT_TIERS: Tuple[SectionTier, ...] = (
    SECTION_TIERS[0],
    SectionTier(
        "secondary",
        lambda label, syn: (label,) + syn,
        functools.partial(_secondary_pattern, colon_required=True),
    ),
)


def _first_match(
    content: str,
    label: str,
    synonyms: Tuple[str, ...],
    tiers: Sequence[SectionTier] = SECTION_TIERS,
    pos: int = 0,
    endpos: Optional[int] = None,
) -> Tuple[Optional[re.Match], Optional[str]]:
    for tier in tiers:
        match = tier.find(content, label, synonyms, pos, endpos)
        if match:
            return match, tier.name
    return None, None


# ---------------------------------------------------------------------------
# Keyword heuristic (last resort)
# ---------------------------------------------------------------------------

# Approximate classifier, not a parser: a sentence mentioning one of these
# verbs is assumed to describe an edit rather than belong to the text.
_CHANGE_KEYWORDS_RE = re.compile(
    r"\b(?:corrected|changed|improved|replaced|revised|fixed|rephrased|reworded|"
    r"korrigiert|geändert|verbessert|ersetzt|überarbeitet|umformuliert)\b",
    re.IGNORECASE,
)
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def _keyword_split(content: str) -> Optional[AIResponse]:
    if not _CHANGE_KEYWORDS_RE.search(content):
        return None

    body_paragraphs: List[str] = []
    change_lines: List[str] = []

    for paragraph in re.split(r"\n\s*\n", content):
        kept: List[str] = []
        for sentence in _SENTENCE_SPLIT_RE.split(paragraph.strip()):
            if not sentence:
                continue
            if _CHANGE_KEYWORDS_RE.search(sentence):
                change_lines.append(f"- {sentence.strip()}")
            else:
                kept.append(sentence)
        if kept:
            body_paragraphs.append(" ".join(kept))

    text = "\n\n".join(body_paragraphs) or content.strip()
    return AIResponse(
        text=strip_emphasis(text),
        changes="\n".join(change_lines),
        tier="heuristic",
    )


# ---------------------------------------------------------------------------
# Section splitting
# ---------------------------------------------------------------------------

def split_sections(
    content: Optional[str],
    schemes: Sequence[SectionScheme] = ALL_SCHEMES,
) -> AIResponse:
    """
    Split a raw model answer into body text and the raw change/note block.

    The scheme is chosen by the strongest tier that finds any of its labels;
    callers that know the task pass its scheme alone.  Never raises.
    """
    content = content or ""
    if not content.strip():
        return AIResponse(
            text="", changes=NO_CHANGES_PLACEHOLDER, is_placeholder=True, tier="fallback"
        )

    try:
        for tier in SECTION_TIERS:
            for scheme in schemes:
                if tier.find(content, scheme.body_label, scheme.body_synonyms) or tier.find(
                    content, scheme.list_label, scheme.list_synonyms
                ):
                    return _split_with_scheme(content, scheme)

        heuristic = _keyword_split(content)
    except Exception as exc:  # fall through to the plain-text result
        logger.error("split_sections: unexpected error: %s", exc, exc_info=True)
        heuristic = None
    else:
        if heuristic is not None:
            logger.info("split_sections: no labels found, used keyword heuristic")
            return heuristic

    logger.info("split_sections: no structure found, returning content as text")
    return AIResponse(
        text=strip_emphasis(content.strip()),
        changes=NO_CHANGES_PLACEHOLDER,
        is_placeholder=True,
        tier="fallback",
    )


def _split_with_scheme(content: str, scheme: SectionScheme) -> AIResponse:
    body_match, body_tier = _first_match(content, scheme.body_label, scheme.body_synonyms)

    if body_match is None:
        # Only the list label was found: everything before it is the text
        list_match, list_tier = _first_match(content, scheme.list_label, scheme.list_synonyms)
        text = content[: list_match.start()].strip()
        changes = content[list_match.end():].strip()
    else:
        list_tiers = _STRICT_TIERS if ":" in body_match.group(0) else SECTION_TIERS
        list_match, list_tier = _first_match(
            content, scheme.list_label, scheme.list_synonyms, list_tiers, pos=body_match.end()
        )
        if list_match is not None:
            text = content[body_match.end(): list_match.start()].strip()
            changes = content[list_match.end():].strip()
        else:
            # List written ahead of the body, or missing altogether
            list_match, list_tier = _first_match(
                content,
                scheme.list_label,
                scheme.list_synonyms,
                list_tiers,
                endpos=body_match.start(),
            )
            text = content[body_match.end():].strip()
            changes = (
                content[list_match.end(): body_match.start()].strip() if list_match else ""
            )

    logger.debug(
        "split_sections: scheme=%s body=%s list=%s",
        scheme.name,
        body_tier or "-",
        list_tier or "-",
    )
    return AIResponse(
        text=strip_emphasis(text),
        changes=changes,
        tier=body_tier or list_tier or "primary",
    )


# ---------------------------------------------------------------------------
# Line-level parsing of the change / note block
# ---------------------------------------------------------------------------

_CATEGORY_RE = re.compile(
    r"^(?:#{1,6}[ \t]*)?(?:\*\*|__)?[ \t]*(?:" + CATEGORY_LABEL + r"|KATEGORIE)[ \t]*"
    r"(?:\*\*|__)?[ \t]*:[ \t]*(?:\*\*|__)?[ \t]*(?P<name>.*?)[ \t]*(?:\*\*|__)?[ \t]*$",
    re.IGNORECASE,
)
_BULLET_RE = re.compile(r"^[-•*][ \t]+(?P<item>.*)$")
_NUMBERED_RE = re.compile(r"^\d+[.)][ \t]+(?P<item>.*)$")


def parse_items(block: Optional[str], orphan_policy: str = ORPHANS_TO_GENERAL) -> List[ChangeItem]:
    """
    Turn a raw change/note block into a flat category/detail list.

    Detail lines that appear before the first category header are put under
    a synthetic "General" category (``orphan_policy="general"``) or dropped
    (``orphan_policy="drop"``).
    """
    items: List[ChangeItem] = []
    in_category = False

    for raw_line in (block or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        category = _CATEGORY_RE.match(line)
        if category:
            name = strip_emphasis(category.group("name")).strip()
            if name:
                items.append(ChangeItem(text=name, is_category=True))
                in_category = True
            continue

        detail = _BULLET_RE.match(line) or _NUMBERED_RE.match(line)
        if detail:
            text = strip_emphasis(detail.group("item")).strip()
        elif len(line) > MIN_UNSTRUCTURED_LINE_LENGTH:
            text = strip_emphasis(line)
        else:
            continue

        if not text:
            continue

        if not in_category:
            if orphan_policy == ORPHANS_DROP:
                continue
            items.append(ChangeItem(text=GENERAL_CATEGORY, is_category=True))
            in_category = True

        items.append(ChangeItem(text=text, is_category=False))

    return items


def response_items(
    response: AIResponse, orphan_policy: str = ORPHANS_TO_GENERAL
) -> List[ChangeItem]:
    """Items for one split response; placeholders become a single detail item."""
    if response.is_placeholder:
        return [ChangeItem(text=response.changes, is_category=False)]
    return parse_items(response.changes, orphan_policy)


# ---------------------------------------------------------------------------
# Markdown helpers
# ---------------------------------------------------------------------------

_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1", re.DOTALL)
_ITALIC_STAR_RE = re.compile(r"(?<![\w*])\*(?=\S)(.+?)(?<=\S)\*(?![\w*])")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?=\S)(.+?)(?<=\S)_(?!\w)")


def strip_emphasis(text: str) -> str:
    """Remove bold/italic markers, keeping the enclosed text."""
    if not text:
        return ""
    text = _BOLD_RE.sub(r"\2", text)
    text = _ITALIC_STAR_RE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
    return text


def remove_markdown(text: str) -> str:
    """
    Make model text safe to paste into Word.

    Drops headings, emphasis, inline code, link targets, strikethrough and
    quote markers; ``- item`` bullets become ``• item``.
    """
    if not text:
        return ""
    text = re.sub(r"^#+ (.*?)$", r"\1", text, flags=re.MULTILINE)
    text = strip_emphasis(text)
    text = re.sub(r"`(.*?)`", r"\1", text)
    text = re.sub(r"^- (.*?)$", r"• \1", text, flags=re.MULTILINE)
    text = re.sub(r"\[(.*?)\]\((.*?)\)", r"\1", text)
    text = text.replace("~~", "")
    text = re.sub(r"^[ \t]*>[ \t]?", "", text, flags=re.MULTILINE)
    return text.strip()
