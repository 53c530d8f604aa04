"""
Prompt construction for editing ("Lektorat") and translation requests.

All instruction templates are module-level constants so they can be tuned
without touching logic code.  Every template asks the model for two
literally labelled sections; the labels below are the contract the
response parser relies on.

Public API
----------
build_editing_prompt(text, mode, model)                         -> str
build_translation_prompt(text, style, source, target, model)    -> str
build_system_message(base, glossary)                            -> str
chunk_notice(text, position, total)                             -> str
"""
from __future__ import annotations

import enum
from typing import Optional, Sequence

from lektorat.services.glossary import GlossaryEntry, format_glossary

# ---------------------------------------------------------------------------
# Section labels (shared with the response parser)
# ---------------------------------------------------------------------------

EDITED_TEXT_LABEL = "EDITED TEXT"
CHANGES_LABEL = "CHANGES"
TRANSLATED_TEXT_LABEL = "TRANSLATED TEXT"
NOTES_LABEL = "NOTES"
CATEGORY_LABEL = "CATEGORY"
GLOSSARY_LABEL = "GLOSSARY"


class EditingMode(str, enum.Enum):
    STANDARD = "standard"
    CORRECTION_ONLY = "correction_only"
    COOKBOOK = "cookbook"


class TranslationStyle(str, enum.Enum):
    STANDARD = "standard"
    LITERARY = "literary"
    TECHNICAL = "technical"


# ---------------------------------------------------------------------------
# System messages
# ---------------------------------------------------------------------------

EDITING_SYSTEM_MESSAGE = (
    "You are a professional copy editor helping to improve texts. "
    f'Structure your answer in two clearly separated parts: "{EDITED_TEXT_LABEL}:" '
    f'and "{CHANGES_LABEL}:".'
)

TRANSLATION_SYSTEM_MESSAGE = (
    "You are a professional translator with expertise in many subject areas and languages.\n"
    "Your task is to translate texts precisely while respecting cultural nuances.\n"
    f'Structure your answer in two clearly separated parts: "{TRANSLATED_TEXT_LABEL}:" '
    f'and "{NOTES_LABEL}:".'
)

# ---------------------------------------------------------------------------
# Editing templates
# ---------------------------------------------------------------------------

_NO_MARKDOWN = (
    "IMPORTANT: Do NOT use any Markdown formatting in the resulting text, "
    "it will be pasted into Word afterwards."
)

_STANDARD_EDITING_PROMPT = f"""\
Carry out a comprehensive copy edit of the following text.

Focus on the following aspects:

1. CONTENT REVIEW
   - Structure and logic: check whether the text is well structured and logically built
   - Coherence: check plot lines, arguments or trains of thought for comprehensibility

2. LANGUAGE REVISION
   - Style: optimise the writing style (suited to genre/audience), make nested sentences easier to follow
   - Word choice: replace unsuitable, redundant or overused words
   - Tone and perspective: check for consistency of tone and narrative perspective

{_NO_MARKDOWN}

Structure your answer as follows:

{EDITED_TEXT_LABEL}:
[Insert the complete revised text here]

{CHANGES_LABEL}:
{CATEGORY_LABEL}: Structure and logic
- [Change with reason]
- [Change with reason]

{CATEGORY_LABEL}: Style
- [Change with reason]
- [Change with reason]

{CATEGORY_LABEL}: Word choice
- [Change with reason]
- [Change with reason]

{CATEGORY_LABEL}: Tone and perspective
- [Change with reason]
- [Change with reason]

Here is the text to edit:

{{text}}"""

_CORRECTION_ONLY_PROMPT = f"""\
Carry out a pure spelling and grammar correction of the following text.

IMPORTANT:
- Correct ONLY spelling mistakes, grammar mistakes and wrong punctuation
- Do NOT change the style, word choice or content of the text
- Keep the original structure and wording
- Do NOT use any Markdown formatting in the resulting text, it will be pasted into Word afterwards

Structure your answer as follows:

{EDITED_TEXT_LABEL}:
[Insert the complete corrected text here]

{CHANGES_LABEL}:
{CATEGORY_LABEL}: Spelling and grammar
- [Correction 1 with a short reason]
- [Correction 2 with a short reason]
(and so on)

Here is the text to edit:

{{text}}"""

_COOKBOOK_PROMPT = f"""\
Review and improve the following recipe as an experienced recipe editor, following these guidelines:

REVIEWING THE INGREDIENT LISTS:
- Remove colons after headings/subheadings
- Order ingredients in the sequence in which they are first mentioned in the text
- Make sure ingredients are assigned to the correct sub-recipes and that those are in the right order
- Correct spelling and grammar according to the Duden
- Use en dashes for quantity ranges (e.g. 1–2)
- Write adjectives/adverbs at the start of a line in lower case
- Add missing ingredients with "XX" as a quantity placeholder
- Show fractions as numerator/denominator (e.g. 1/2)
- Do not use bullet points in the ingredient list
- Do not list water among the ingredients, only mention it in the preparation text

REVIEWING THE PREPARATION TEXTS:
- Remove colons after headings/subheadings
- Correct grammar and spelling
- Change "Hitze" to "Temperatur"
- Use en dashes correctly for from-to ranges
- Replace normal quotation marks with French guillemets »...«
- Change "Soße" to "Sauce"
- Rewrite note-style phrases as complete sentences
- Add an article to every ingredient mentioned in the text
- Split the preparation steps into paragraphs without numbering
- Use short forms for units of measurement (EL, TL, g, kg, °C)
- Write numbers before units of measurement as digits, otherwise spell them out
- Start every sub-recipe with an introductory phrase
- Use a varied vocabulary, avoid repeating words
- Write "etwa" instead of "ca."

SPECIAL RULES:
- Always use "Karotten" instead of "Möhren"
- Always use "Gewürznelken" instead of just "Nelken"
- If an ingredient is singular in the ingredient list, use the singular in the text as well
- Write "trockenschleudern", "trockenschütteln", "trockentupfen" as one word

PRIORITY: The most important rule is the correct order of the ingredients according to their mention in the preparation text.

{_NO_MARKDOWN}

Structure your answer as follows:

{EDITED_TEXT_LABEL}:
[Insert the completely revised recipe text here]

{CHANGES_LABEL}:
{CATEGORY_LABEL}: Ingredient list
- [Change with reason]
- [Change with reason]

{CATEGORY_LABEL}: Preparation text
- [Change with reason]
- [Change with reason]

{CATEGORY_LABEL}: Formatting
- [Change with reason]
- [Change with reason]

Here is the recipe to edit:

{{text}}"""

EDITING_PROMPTS = {
    EditingMode.STANDARD: _STANDARD_EDITING_PROMPT,
    EditingMode.CORRECTION_ONLY: _CORRECTION_ONLY_PROMPT,
    EditingMode.COOKBOOK: _COOKBOOK_PROMPT,
}

# ---------------------------------------------------------------------------
# Translation templates
# ---------------------------------------------------------------------------

TRANSLATION_STYLE_INSTRUCTIONS = {
    TranslationStyle.STANDARD: (
        "Produce a balanced translation with a natural flow that is both "
        "precise and readable."
    ),
    TranslationStyle.LITERARY: (
        "Pay particular attention to literary quality, style and nuance. "
        "Preserve poetic elements, metaphors and the tone of the original."
    ),
    TranslationStyle.TECHNICAL: (
        "This is a technical text. Use precise technical terminology and pay "
        "attention to domain-specific correctness. Terminology takes priority "
        "over stylistic considerations."
    ),
}

_TRANSLATION_PROMPT = f"""\
{{language_instruction}} into {{target_language}}.

{{style_instruction}}

IMPORTANT INSTRUCTIONS:
1. Translate the entire text completely and accurately
2. Preserve the original paragraph structure and formatting
3. Do NOT use any Markdown formatting in the translation
4. Do not add your own explanations or comments to the translation
5. If you are unsure about a translation, note it separately under {NOTES_LABEL}

Structure your answer in two clearly separated parts:

{TRANSLATED_TEXT_LABEL}:
[Insert the complete translated text here]

{NOTES_LABEL}:
{CATEGORY_LABEL}: Source language
- [Detected language, if detected automatically]

{CATEGORY_LABEL}: Translation decisions
- [Explain important translation decisions]

{CATEGORY_LABEL}: Cultural adaptations
- [Explain cultural adaptations]

{CATEGORY_LABEL}: Uncertainties
- [Note uncertainties or ambiguous terms]

Here is the text to translate:

{{text}}"""

LANGUAGE_NAMES = {
    "auto": "Detected automatically",
    "de": "German",
    "en": "English",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "nl": "Dutch",
    "pl": "Polish",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ar": "Arabic",
    "pt": "Portuguese",
    "tr": "Turkish",
}

_CHUNK_NOTICE = "This is part {number} of {total} of a larger text. Process this part as usual:"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def get_language_name(code: str) -> str:
    """Map an ISO 639-1 code to its display name; unknown codes pass through."""
    return LANGUAGE_NAMES.get(code, code)


def build_editing_prompt(text: str, mode: EditingMode, model: str) -> str:
    """Return the user prompt for editing *text* in the given *mode*."""
    template = EDITING_PROMPTS[EditingMode(mode)]
    return f"@{model} " + template.format(text=text)


def build_translation_prompt(
    text: str,
    style: TranslationStyle,
    source_language: str,
    target_language: str,
    model: str,
) -> str:
    """Return the user prompt for translating *text* into *target_language*."""
    if source_language == "auto":
        language_instruction = "Detect the source language automatically and translate"
    else:
        language_instruction = f"Translate from {get_language_name(source_language)}"

    prompt = _TRANSLATION_PROMPT.format(
        language_instruction=language_instruction,
        target_language=get_language_name(target_language),
        style_instruction=TRANSLATION_STYLE_INSTRUCTIONS[TranslationStyle(style)],
        text=text,
    )
    return f"@{model} " + prompt


def build_system_message(
    base: str,
    glossary: Optional[Sequence[GlossaryEntry]] = None,
) -> str:
    """
    Append the glossary block to the system message.

    The glossary goes into the system instructions rather than the user
    prompt so every chunk of a job sees the same terminology rules.
    """
    block = format_glossary(glossary)
    if not block:
        return base
    return (
        f"{base}\n\n{GLOSSARY_LABEL}:\n"
        "Use the following terms consistently as defined:\n"
        f"{block}"
    )


def chunk_notice(text: str, position: int, total: int) -> str:
    """Prefix every chunk after the first with a part-N-of-M notice."""
    if position <= 0:
        return text
    notice = _CHUNK_NOTICE.format(number=position + 1, total=total)
    return f"{notice}\n\n{text}"
