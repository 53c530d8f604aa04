"""Tests for the tiered response parser."""
import pytest

from lektorat.services.response_parser import (
    EMPTY_RESPONSE_PLACEHOLDER,
    GENERAL_CATEGORY,
    NO_CHANGES_PLACEHOLDER,
    ORPHANS_DROP,
    EDITING_SCHEME,
    TRANSLATION_SCHEME,
    AIResponse,
    ChangeItem,
    ParsedResponse,
    parse_items,
    remove_markdown,
    response_items,
    split_sections,
)


def parse_editing(content):
    response = split_sections(content, (EDITING_SCHEME,))
    return ParsedResponse(text=response.text, items=response_items(response))


def parse_translation(content):
    response = split_sections(content, (TRANSLATION_SCHEME,))
    return ParsedResponse(text=response.text, items=response_items(response))


# ---------------------------------------------------------------------------
# Section splitting
# ---------------------------------------------------------------------------

def test_label_extraction_example():
    result = parse_editing(
        "EDITED TEXT:\nHello\n\nCHANGES:\nCATEGORY: Grammar\n- Fixed a comma"
    )
    assert result.text == "Hello"
    assert result.items == [
        ChangeItem(text="Grammar", is_category=True),
        ChangeItem(text="Fixed a comma", is_category=False),
    ]


def test_bold_and_heading_labels():
    content = (
        "## **EDITED TEXT:**\n"
        "Der Text ist **jetzt** besser.\n\n"
        "**CHANGES:**\n"
        "**CATEGORY: Style**\n"
        "- Shortened the *first* sentence"
    )
    response = split_sections(content)
    assert response.tier == "primary"
    assert response.text == "Der Text ist jetzt besser."

    items = parse_items(response.changes)
    assert items[0] == ChangeItem(text="Style", is_category=True)
    assert items[1].text == "Shortened the first sentence"


def test_german_labels_use_secondary_tier():
    content = (
        "LEKTORIERTER TEXT:\nDas ist der Text.\n\n"
        "ÄNDERUNGEN:\nKATEGORIE: Grammatik\n- Komma ergänzt"
    )
    response = split_sections(content)
    assert response.tier == "secondary"
    assert response.text == "Das ist der Text."
    assert parse_items(response.changes) == [
        ChangeItem(text="Grammatik", is_category=True),
        ChangeItem(text="Komma ergänzt", is_category=False),
    ]


def test_label_without_colon_on_its_own_line():
    content = "Corrected Text\nAll good now.\n\nChanges Made\n- Fixed spelling of 'recieve'"
    result = parse_editing(content)
    assert result.text == "All good now."
    assert result.items[-1].text == "Fixed spelling of 'recieve'"


def test_only_changes_label_uses_preceding_text():
    result = parse_editing("Just the text.\n\nCHANGES:\n- Removed a comma")
    assert result.text == "Just the text."
    assert result.items == [
        ChangeItem(text=GENERAL_CATEGORY, is_category=True),
        ChangeItem(text="Removed a comma", is_category=False),
    ]


def test_only_text_label_has_empty_changes():
    result = parse_editing("EDITED TEXT:\nNothing else here.")
    assert result.text == "Nothing else here."
    assert result.items == []


def test_translation_labels():
    content = (
        "TRANSLATED TEXT:\nThe house is red.\n\n"
        "NOTES:\nCATEGORY: Source language\n- German (detected automatically)"
    )
    result = parse_translation(content)
    assert result.text == "The house is red."
    assert result.items[0] == ChangeItem(text="Source language", is_category=True)


def test_only_changes_label_with_nothing_before_has_blank_text():
    result = parse_editing("CHANGES:\n- Nothing to do")
    assert result.text == ""
    assert result.items[-1].text == "Nothing to do"


# ---------------------------------------------------------------------------
# Label-like lines inside the body
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("heading", ["Notes", "Translation", "Corrections", "Changes Made"])
def test_bare_heading_in_body_does_not_end_text(heading):
    content = (
        "EDITED TEXT:\nIntro paragraph.\n\n"
        f"{heading}\nThe rest of the chapter.\n\n"
        "CHANGES:\nCATEGORY: Style\n- Smoothed a sentence"
    )
    result = parse_editing(content)
    assert result.text == f"Intro paragraph.\n\n{heading}\nThe rest of the chapter."
    assert result.items == [
        ChangeItem(text="Style", is_category=True),
        ChangeItem(text="Smoothed a sentence", is_category=False),
    ]


def test_other_schemes_label_in_body_is_kept():
    content = (
        "LEKTORIERTER TEXT:\nDer Text.\nNotes: wichtig.\n\n"
        "ÄNDERUNGEN:\nKATEGORIE: Stil\n- Satz umgestellt"
    )
    result = parse_editing(content)
    assert result.text == "Der Text.\nNotes: wichtig."
    assert result.items == [
        ChangeItem(text="Stil", is_category=True),
        ChangeItem(text="Satz umgestellt", is_category=False),
    ]


def test_translation_heading_inside_translated_text():
    content = (
        "TRANSLATED TEXT:\nChapter one.\n\nTranslation\nA note on the title.\n\n"
        "NOTES:\n- Title kept in the original"
    )
    result = parse_translation(content)
    assert result.text == "Chapter one.\n\nTranslation\nA note on the title."
    assert result.items[-1].text == "Title kept in the original"


def test_list_written_before_body():
    content = "CHANGES:\n- Fixed a typo\n\nEDITED TEXT:\nThe fixed text."
    result = parse_editing(content)
    assert result.text == "The fixed text."
    assert result.items[-1].text == "Fixed a typo"


def test_keyword_heuristic_splits_sentences():
    content = "Die Sonne scheint. I corrected the spelling of Sonne. Es ist warm."
    response = split_sections(content)
    assert response.tier == "heuristic"
    assert response.text == "Die Sonne scheint. Es ist warm."
    assert "- I corrected the spelling of Sonne." in response.changes


def test_unstructured_text_falls_back_to_placeholder():
    result = parse_editing("Just a plain answer without any structure")
    assert result.text == "Just a plain answer without any structure"
    assert result.items == [ChangeItem(text=NO_CHANGES_PLACEHOLDER, is_category=False)]


@pytest.mark.parametrize("content", ["", "   ", "\n\n\t", None, "***", "CATEGORY:", "1)"])
def test_parser_is_total(content):
    result = parse_editing(content)
    assert result.text is not None
    assert isinstance(result.items, list)


# ---------------------------------------------------------------------------
# Item parsing
# ---------------------------------------------------------------------------

def test_numbered_and_bullet_variants():
    block = "CATEGORY: Punctuation\n1. First fix\n2) Second fix\n• Third fix\n* Fourth fix"
    assert [i.text for i in parse_items(block)] == [
        "Punctuation",
        "First fix",
        "Second fix",
        "Third fix",
        "Fourth fix",
    ]


def test_unstructured_lines_need_minimum_length():
    items = parse_items("CATEGORY: Misc\n---\nThis line is long enough to count")
    assert items == [
        ChangeItem(text="Misc", is_category=True),
        ChangeItem(text="This line is long enough to count", is_category=False),
    ]


def test_orphans_go_to_general_by_default():
    items = parse_items("- Orphan fix\nCATEGORY: Style\n- Styled")
    assert items == [
        ChangeItem(text=GENERAL_CATEGORY, is_category=True),
        ChangeItem(text="Orphan fix", is_category=False),
        ChangeItem(text="Style", is_category=True),
        ChangeItem(text="Styled", is_category=False),
    ]


def test_orphans_can_be_dropped():
    items = parse_items("- Orphan fix\nCATEGORY: Style\n- Styled", orphan_policy=ORPHANS_DROP)
    assert items == [
        ChangeItem(text="Style", is_category=True),
        ChangeItem(text="Styled", is_category=False),
    ]


def test_placeholder_response_becomes_single_item():
    response = AIResponse(text="", changes=EMPTY_RESPONSE_PLACEHOLDER, is_placeholder=True)
    assert response_items(response) == [
        ChangeItem(text=EMPTY_RESPONSE_PLACEHOLDER, is_category=False)
    ]


# ---------------------------------------------------------------------------
# Markdown cleanup
# ---------------------------------------------------------------------------

def test_remove_markdown():
    text = "# Title\n**bold** and *italic* with `code`\n- item\n> quote\n[link](http://x) ~~gone~~"
    assert remove_markdown(text) == "Title\nbold and italic with code\n• item\nquote\nlink gone"


def test_remove_markdown_empty():
    assert remove_markdown("") == ""
